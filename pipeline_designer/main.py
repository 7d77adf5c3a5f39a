from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pipeline_designer.routers import projects, simulation, hub, health
from pipeline_designer.domain.errors import NotFoundError, ValidationError, ConflictError
from pipeline_designer.application.event_handlers import register_event_handlers
from pipeline_designer.config import settings
from pipeline_designer.db import init_db

app = FastAPI(
    title="Pipeline Designer API",
    description="Storage and simulation backend for the pipeline diagram editor",
    version=settings.VERSION,
)

# Register domain event handlers and make sure tables exist on startup
@app.on_event("startup")
async def startup_event():
    register_event_handlers()
    init_db()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


# Domain error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

# Include routers
app.include_router(health.router, tags=["Health"])  # Health check endpoints first
app.include_router(projects.router, prefix="/api/pipeline", tags=["Projects"])
app.include_router(simulation.router, prefix="/api/pipeline", tags=["Simulation"])
app.include_router(hub.router, tags=["Simulation hub"])

@app.get("/")
async def root():
    return {"message": "Pipeline Designer API is running! See /docs for API documentation"}
