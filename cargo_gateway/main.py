from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cargo_gateway.registry import ADAPTER_CLASSES
from cargo_gateway.routers.cargo import router as cargo_router

app = FastAPI(title="Cargo Gateway")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cargo_router)


@app.get("/")
async def root():
    return {
        "status": "ONLINE",
        "engine": "Cargo Gateway V1",
        "carriers": [cls.carrier_id for cls in ADAPTER_CLASSES],
    }
