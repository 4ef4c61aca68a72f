"""
Administrative HTTP functions.

Each function answers with a single JSON object and the permissive CORS
headers, errors included (see ``utils.function_errors``).
"""
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session

from database import get_db
from dependencies import require_function_admin, require_function_config
from models.user import User
from schemas.functions import SignupRequest, DemoDataRequest
from services.accounts import AccountExistsError, register_account
from services.demo_data import import_demo_data, reset_business_data
from services.ledger_sync import initialize_opening_balances, backfill_order_deductions
from utils.function_errors import CORS_HEADERS, FunctionError, function_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Functions"])


async def read_json_body(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        raise FunctionError(400, "Invalid JSON body")
    if not isinstance(payload, dict):
        raise FunctionError(400, "Invalid JSON body")
    return payload


@router.options("/{function_name}")
def function_preflight(function_name: str):
    """CORS preflight for every function."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/init-stock-ledger")
def init_stock_ledger(
    current_user: User = Depends(require_function_admin),
    db: Session = Depends(get_db)
):
    """Write opening balance rows from current stock into an empty ledger."""
    try:
        result = initialize_opening_balances(db)
    except Exception as e:
        logger.error(f"init-stock-ledger failed: {e}")
        raise FunctionError(500, "Internal error")

    logger.info(f"init-stock-ledger run by {current_user.email}: {result}")
    return function_response(result)


@router.post("/sync-order-ledger")
def sync_order_ledger(
    current_user: User = Depends(require_function_admin),
    db: Session = Depends(get_db)
):
    """Mirror order deductions that have no ledger rows yet into the ledger."""
    try:
        result = backfill_order_deductions(db)
    except Exception as e:
        logger.error(f"sync-order-ledger failed: {e}")
        raise FunctionError(500, str(e) or "Unknown error")

    logger.info(f"sync-order-ledger run by {current_user.email}: synced {result['synced']}")
    return function_response(result)


@router.post("/signup-first-admin", dependencies=[Depends(require_function_config)])
async def signup_first_admin(request: Request, db: Session = Depends(get_db)):
    """Create an account. The first account ever created becomes the super admin."""
    payload = await read_json_body(request)
    try:
        signup = SignupRequest.model_validate(payload)
    except ValidationError:
        raise FunctionError(400, "Email and password are required")

    if not signup.email or not signup.password:
        raise FunctionError(400, "Email and password are required")

    try:
        user, is_first_user, role = register_account(db, signup.email, signup.password, signup.fullName)
    except AccountExistsError as e:
        raise FunctionError(400, str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"signup-first-admin failed: {e}")
        raise FunctionError(500, "An unexpected error occurred")

    message = (
        "Account created! You are the Super Admin."
        if is_first_user
        else "Account created! Please wait for admin approval to access the app."
    )
    return function_response({
        "success": True,
        "isFirstUser": is_first_user,
        "role": role.value if role else None,
        "message": message,
    })


@router.post("/manage-demo-data")
async def manage_demo_data(
    request: Request,
    current_user: User = Depends(require_function_admin),
    db: Session = Depends(get_db)
):
    """Load or clear the sample business data."""
    payload = await read_json_body(request)
    try:
        action = DemoDataRequest.model_validate(payload).action
    except ValidationError:
        action = None

    try:
        if action == "import":
            counts = import_demo_data(db, created_by=current_user.email)
            logger.info(f"Demo data imported by {current_user.email}: {counts}")
            return function_response({"success": True, "message": "Demo data imported successfully", **counts})

        if action == "reset":
            reset_business_data(db)
            logger.info(f"All business data reset by {current_user.email}")
            return function_response({"success": True, "message": "All data reset successfully"})
    except Exception as e:
        db.rollback()
        logger.error(f"manage-demo-data {action} failed: {e}")
        raise FunctionError(500, str(e) or "Unknown error")

    raise FunctionError(400, "Invalid action")
