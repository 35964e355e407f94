import logging
import math
from typing import Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from models.erros import CalculationError, FormatError
from models.schemas import (
    CalculoResponse,
    ConversaoRequest,
    DadosSimulacaoAninhada,
    DadosSimulacaoPlana,
    ImpactoRequest,
    MitigacaoRequest,
    ParametrosSetoriais,
    ProjecaoRequest,
)
from services.cronograma_service import TRANSITION_YEARS
from services.dados_service import converter_dados_simulador
from services.estrategias_service import calcular_efetividade_mitigacao
from services.impacto_service import (
    calcular_impacto_capital_giro,
    calcular_impacto_ciclo_financeiro,
    calcular_necessidade_adicional_capital,
)
from services.projecao_service import calcular_projecao_temporal
from services.simulador_service import coordenar_calculos, resultados_simulacao

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["simulador"])


def _sem_infinitos(valor):
    """Replaces non-finite floats (e.g. an infinite cost-benefit ratio) with None, recursively."""
    if isinstance(valor, float):
        return valor if math.isfinite(valor) else None
    if isinstance(valor, dict):
        return {chave: _sem_infinitos(v) for chave, v in valor.items()}
    if isinstance(valor, (list, tuple)):
        return [_sem_infinitos(v) for v in valor]
    return valor


def _plano(modelo: BaseModel) -> dict:
    # campos omitidos ficam de fora para que o motor aplique os próprios padrões
    return modelo.model_dump(exclude_none=True)


def _setoriais(parametros: Optional[ParametrosSetoriais]) -> Optional[dict]:
    return parametros.model_dump(exclude_none=True) if parametros else None


def _resposta(data) -> CalculoResponse:
    return CalculoResponse(success=True, data=_sem_infinitos(data))


def _executar(operacao: str, funcao, *args, **kwargs) -> CalculoResponse:
    """Runs an engine call and maps its exceptions to HTTP status codes."""
    try:
        return _resposta(funcao(*args, **kwargs))
    except (FormatError, ValueError) as e:
        logger.warning("Dados inválidos em %s: %s", operacao, e)
        raise HTTPException(status_code=400, detail=str(e))
    except CalculationError as e:
        logger.error("Falha de cálculo em %s (etapa %s): %s", operacao, e.etapa, e)
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Erro inesperado em %s", operacao)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/simular", response_model=CalculoResponse)
async def simular(dados: Union[DadosSimulacaoAninhada, DadosSimulacaoPlana]):
    """
    Full simulation: base-year impact, projection over the data's date range,
    calculation memory and export summary. The result is kept as the last
    simulation.
    """
    resposta = _executar("simular", coordenar_calculos, _plano(dados))
    resultados_simulacao.registrar(resposta.data)
    return resposta


@router.post("/impacto", response_model=CalculoResponse)
async def impacto(req: ImpactoRequest):
    return _executar(
        "impacto",
        calcular_impacto_capital_giro,
        _plano(req.dados),
        req.ano,
        _setoriais(req.parametrosSetoriais),
    )


@router.post("/projecao", response_model=CalculoResponse)
async def projecao(req: ProjecaoRequest):
    return _executar(
        "projecao",
        calcular_projecao_temporal,
        _plano(req.dados),
        req.anoInicial,
        req.anoFinal,
        req.cenario,
        req.taxaPersonalizada,
        _setoriais(req.parametrosSetoriais),
    )


@router.post("/estrategias", response_model=CalculoResponse)
async def estrategias(req: MitigacaoRequest):
    """Evaluates the active mitigation strategies and the best combination of them."""
    return _executar(
        "estrategias",
        calcular_efetividade_mitigacao,
        _plano(req.dados),
        req.estrategias,
        req.ano,
        _setoriais(req.parametrosSetoriais),
    )


@router.post("/necessidade-capital", response_model=CalculoResponse)
async def necessidade_capital(req: ImpactoRequest):
    return _executar(
        "necessidade-capital",
        calcular_necessidade_adicional_capital,
        _plano(req.dados),
        req.ano,
        _setoriais(req.parametrosSetoriais),
    )


@router.post("/ciclo-financeiro", response_model=CalculoResponse)
async def ciclo_financeiro(req: ImpactoRequest):
    return _executar(
        "ciclo-financeiro",
        calcular_impacto_ciclo_financeiro,
        _plano(req.dados),
        req.ano,
        _setoriais(req.parametrosSetoriais),
    )


@router.post("/converter", response_model=CalculoResponse)
async def converter(req: ConversaoRequest):
    """Converts simulation data between the flat and nested formats ("plano" | "aninhado")."""
    return _executar("converter", converter_dados_simulador, req.dados, req.formato)


@router.get("/cronograma", response_model=CalculoResponse)
async def cronograma():
    """Year-by-year transition schedule (Split Payment, CBS and IBS fractions)."""
    return CalculoResponse(success=True, data=TRANSITION_YEARS)


@router.get("/simulacao/ultima", response_model=CalculoResponse)
async def ultima_simulacao():
    resultado = resultados_simulacao.ultimo()
    if resultado is None:
        raise HTTPException(status_code=404, detail="Nenhuma simulação realizada.")
    return CalculoResponse(success=True, data=resultado)
