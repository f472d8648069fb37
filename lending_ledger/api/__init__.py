"""
Lending Ledger API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .loans import router as loans_router
from .collectors import router as collectors_router, auth_router
from .projections import router as projections_router
from .reporting import router as reporting_router
from ..errors import (
    LedgerError, NotFoundError, InvalidAmountError, DuplicateIdentityError,
    UnauthenticatedError, ConcurrentModificationError, LoanSettledError
)
from ..logging_config import get_logger


logger = get_logger("lending_ledger.api")

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    InvalidAmountError: 400,
    DuplicateIdentityError: 409,
    UnauthenticatedError: 401,
    ConcurrentModificationError: 409,
    LoanSettledError: 409,
}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = 400
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Lending Ledger API",
        description="Loan accrual, payment and collector commission engine",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(projections_router, prefix="/projections", tags=["Projections"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(collectors_router, prefix="/collectors", tags=["Collectors"])
    app.include_router(reporting_router, prefix="/reports", tags=["Reports"])
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "lending_ledger_api",
            "version": "1.0.0"
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Lending Ledger API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": "/auth",
                "projections": "/projections",
                "loans": "/loans",
                "collectors": "/collectors",
                "reports": "/reports",
            }
        }
    
    return app


app = create_app()
