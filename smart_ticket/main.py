from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smart_ticket.config import settings
from smart_ticket.database import init_db
from smart_ticket.logging_config import setup_logging
from smart_ticket.auth import router as auth_router
from smart_ticket.bookings import router as bookings_router
from smart_ticket.forecast import router as forecast_router

setup_logging(settings.LOG_LEVEL)

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Transport ticket booking and demand forecasting API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# First loc element names where a parameter came from, not the field itself
REQUEST_LOCATIONS = ("body", "query", "path", "header", "cookie")

def _field_path(loc):
    return loc[1:] if loc and loc[0] in REQUEST_LOCATIONS else loc

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 with field-level errors"""
    errors = [
        {
            "field": ".".join(str(part) for part in _field_path(error["loc"])),
            "message": error["msg"]
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "code": "VALIDATION_ERROR", "errors": errors}
    )

# Include routers
app.include_router(
    auth_router.router,
    prefix=f"{settings.API_V1_STR}/auth",
    tags=["Authentication"]
)

app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings"]
)

app.include_router(
    forecast_router,
    prefix=f"{settings.API_V1_STR}/forecast",
    tags=["Forecasting"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Smart Ticket Tracker API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
