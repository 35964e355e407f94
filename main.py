from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routers.simulador import router as simulador_router
from services.config import CORS_ORIGINS, configurar_logging

configurar_logging()

app = FastAPI(
    title="Simulador Split Payment - Backend",
    description="Impacto do Split Payment e da transição para o IVA Dual (CBS/IBS) no capital de giro",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(simulador_router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "Simulador Split Payment Backend"}
