from sqlalchemy.orm import Session


def generate_code(db: Session, model, prefix: str, width: int = 3) -> str:
    """Generate the next sequential ID for a model, e.g. MAT001, MAT002 ...

    IDs are zero padded so that string ordering matches creation order.
    """
    last = (
        db.query(model)
        .filter(model.id.like(f"{prefix}%"))
        .order_by(model.id.desc())
        .first()
    )

    if not last:
        return f"{prefix}{1:0{width}d}"

    try:
        last_number = int(str(last.id)[len(prefix):])
        return f"{prefix}{last_number + 1:0{width}d}"
    except ValueError:
        return f"{prefix}{db.query(model).count() + 1:0{width}d}"
