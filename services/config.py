"""
Parâmetros padrão do simulador, sobrescrevíveis por variáveis de ambiente.
"""

import logging
import os

# Custo mensal do capital de giro (2,1% a.m.)
TAXA_CAPITAL_GIRO_PADRAO = float(os.getenv("SIMULADOR_TAXA_CAPITAL_GIRO", "0.021"))

# Margem de segurança aplicada à necessidade adicional de capital
FATOR_SEGURANCA = float(os.getenv("SIMULADOR_FATOR_SEGURANCA", "1.2"))

# Prazo legal de recolhimento dos tributos (dias)
PRAZO_RECOLHIMENTO = int(os.getenv("SIMULADOR_PRAZO_RECOLHIMENTO", "25"))

CORS_ORIGINS = [
    origem.strip()
    for origem in os.getenv(
        "SIMULADOR_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origem.strip()
]

LOG_LEVEL = os.getenv("SIMULADOR_LOG_LEVEL", "INFO").upper()


def configurar_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
