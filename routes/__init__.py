from .user import router as user_router
from .parties import router as parties_router
from .materials import router as materials_router
from .orders import router as orders_router
from .stock_ledger import router as stock_ledger_router
from .functions import router as functions_router
from fastapi import APIRouter

# Create main router
router = APIRouter()

# Include auth and user routes
router.include_router(user_router, tags=["Authentication & Users"])

# Include party routes
router.include_router(parties_router)

# Include material, category and unit routes
router.include_router(materials_router)

# Include order routes
router.include_router(orders_router)

# Include stock ledger routes
router.include_router(stock_ledger_router)

__all__ = ["router", "functions_router"]
