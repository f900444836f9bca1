from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vardec.routers import files, hints
from vardec.services.session import HintSessionManager


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = HintSessionManager()
    manager.start()
    app.state.hint_sessions = manager
    yield
    manager.shutdown()


app = FastAPI(
    title="VarDec Server",
    description="Blank-line variable liveness hints for editor plugins.",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Editor webviews and local tools
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(hints.router)
app.include_router(files.router)

@app.get("/api-status")
async def root():
    return {"message": "VarDec Server is running. Visit /docs for API documentation."}
