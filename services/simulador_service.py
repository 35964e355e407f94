"""
Coordenação da simulação completa: impacto do ano inicial, projeção da
transição, memória de cálculo e estrutura de exportação.
"""

import copy
import logging
from typing import Optional

from services.cronograma_service import ANO_FINAL_TRANSICAO, ANO_INICIAL_TRANSICAO, CRONOGRAMAS_PADRAO
from services.dados_service import (
    FORMATO_ANINHADO,
    converter_para_estrutura_aninhada,
    converter_para_estrutura_plana,
    detectar_tipo_estrutura,
    garantir_dados_planos,
    log_transformacao,
    validar_e_normalizar,
)
from services.impacto_service import calcular_impacto_capital_giro
from services.nucleo_calculo_service import numero
from services.projecao_service import calcular_projecao_temporal

logger = logging.getLogger(__name__)


def _ano_da_data(data, padrao: int) -> int:
    try:
        return int(str(data).split("-")[0])
    except (TypeError, ValueError):
        return padrao


def coordenar_calculos(dados, provider=None) -> dict:
    """
    Runs the base-year impact and the projection for the period between
    dataInicial and dataFinal. Nested input is converted first.
    """
    if detectar_tipo_estrutura(dados) == FORMATO_ANINHADO:
        dados = converter_para_estrutura_plana(dados)
    dados = garantir_dados_planos(dados, "coordenar_calculos")

    ano_inicial = _ano_da_data(dados.get("dataInicial"), ANO_INICIAL_TRANSICAO)
    ano_final = _ano_da_data(dados.get("dataFinal"), ANO_FINAL_TRANSICAO)
    logger.info("Simulação de %s a %s (faturamento=%s)", ano_inicial, ano_final, dados.get("faturamento"))

    impacto_base = calcular_impacto_capital_giro(dados, ano_inicial, provider=provider)
    projecao = calcular_projecao_temporal(
        dados,
        ano_inicial,
        ano_final,
        dados.get("cenario") or "moderado",
        dados.get("taxaCrescimento"),
        provider=provider,
    )

    return {
        "impactoBase": impacto_base,
        "projecaoTemporal": projecao,
        "memoriaCalculo": gerar_memoria_calculo(dados, impacto_base, projecao),
        "resultadosExportacao": gerar_resultados_exportacao(projecao),
    }


def gerar_memoria_calculo(dados, impacto_base: dict, projecao: dict) -> dict:
    dados = garantir_dados_planos(dados, "gerar_memoria_calculo")

    def valor(chave, padrao):
        v = dados.get(chave)
        return v if isinstance(v, (int, float)) and not isinstance(v, bool) else padrao

    return {
        "dadosEntrada": {
            "empresa": {
                "faturamento": valor("faturamento", 0),
                "margem": valor("margem", 0),
                "setor": dados.get("setor") or "",
                "tipoEmpresa": dados.get("tipoEmpresa") or "",
                "regime": dados.get("regime") or "",
            },
            "cicloFinanceiro": {
                "pmr": valor("pmr", 30),
                "pmp": valor("pmp", 30),
                "pme": valor("pme", 30),
                "percVista": valor("percVista", 0.3),
                "percPrazo": valor("percPrazo", 0.7),
            },
            "parametrosFiscais": {
                "aliquota": valor("aliquota", 0.265),
                "tipoOperacao": dados.get("tipoOperacao") or "",
                "regime": dados.get("regime") or "",
                "creditos": {
                    imposto.lower(): valor(f"creditos{imposto}", 0)
                    for imposto in ("PIS", "COFINS", "ICMS", "IPI", "CBS", "IBS")
                },
                "debitos": {
                    imposto.lower(): valor(f"debito{imposto}", 0)
                    for imposto in ("PIS", "COFINS", "ICMS", "IPI", "ISS")
                },
                "cronogramaTransicao": dict(CRONOGRAMAS_PADRAO["splitPayment"]),
            },
            "parametrosSimulacao": {
                "cenario": dados.get("cenario") or "moderado",
                "taxaCrescimento": valor("taxaCrescimento", 0.05),
                "dataInicial": dados.get("dataInicial") or "2026-01-01",
                "dataFinal": dados.get("dataFinal") or "2033-12-31",
            },
        },
        "impactoBase": {
            "diferencaCapitalGiro": impacto_base.get("diferencaCapitalGiro"),
            "percentualImpacto": impacto_base.get("percentualImpacto"),
            "impactoDiasFaturamento": impacto_base.get("impactoDiasFaturamento"),
        },
        "projecaoTemporal": {
            "parametros": projecao.get("parametros"),
            "impactoAcumulado": projecao.get("impactoAcumulado"),
        },
        "memoriaCritica": {
            "formula": (
                "Impacto Transição = (Sistema Atual × % Atual) + (IVA Dual × % IVA) - Sistema Atual Original"
            ),
            "passoAPasso": [
                "1. Calcular débitos e créditos por imposto no sistema atual",
                "2. Calcular alíquotas efetivas por imposto",
                "3. Determinar percentual de transição para o ano (10% em 2026 até 100% em 2033)",
                "4. Calcular valor híbrido: (Tributos Atuais × % Sistema Atual) + (IVA Dual × % Sistema Novo)",
                "5. Determinar impacto no capital de giro considerando a transição progressiva",
                "6. Projetar impactos ao longo dos 8 anos de transição",
            ],
            "observacoes": [
                "Durante a transição, empresas pagarão ambos os sistemas simultaneamente",
                "O percentual do sistema atual diminui gradualmente de 90% (2026) para 0% (2033)",
                "O percentual do IVA Dual aumenta gradualmente de 10% (2026) para 100% (2033)",
                "Cálculos baseiam-se na LC 214/2025 e regulamentação posterior",
                "Valores podem variar conforme alterações na regulamentação",
            ],
        },
    }


def gerar_resultados_exportacao(projecao: dict) -> dict:
    """Per-year summary of a projection, in the shape used by report exports."""
    resultados_anuais = (projecao or {}).get("resultadosAnuais") or {}
    anos = sorted(resultados_anuais)

    resultados_por_ano = {}
    for ano in anos:
        dados_ano = resultados_anuais[ano]
        atual = dados_ano.get("resultadoAtual") or {}
        split = dados_ano.get("resultadoSplitPayment") or {}
        sem_split = dados_ano.get("resultadoIVASemSplit") or atual
        resultados_por_ano[ano] = {
            "capitalGiroSplitPayment": numero(split.get("capitalGiroDisponivel")),
            "capitalGiroAtual": numero(atual.get("capitalGiroDisponivel")),
            "capitalGiroIVASemSplit": numero(sem_split.get("capitalGiroDisponivel")),
            "diferenca": numero(dados_ano.get("diferencaCapitalGiro")),
            "diferencaIVASemSplit": numero(dados_ano.get("diferencaCapitalGiroIVASemSplit")),
            "percentualImpacto": numero(dados_ano.get("percentualImpacto")),
            "impostoDevido": numero((split.get("impostos") or {}).get("total")),
            "sistemaAtual": numero((atual.get("impostos") or {}).get("total")),
        }

    variacao_total = sum(r["diferenca"] for r in resultados_por_ano.values())
    return {
        "anos": anos,
        "resultadosPorAno": resultados_por_ano,
        "resumo": {
            "variacaoTotal": variacao_total,
            "tendenciaGeral": "aumento" if variacao_total > 0 else "redução",
        },
    }


def simular_impacto_split_payment(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """
    Entry point for form data: nested input is validated, normalised and
    flattened before the impact is computed. The result carries the nested
    view of the data actually simulated under "dadosAninhados".
    Errors propagate to the caller.
    """
    if dados is None:
        raise ValueError("Dados de entrada não fornecidos para simulação")

    if detectar_tipo_estrutura(dados) == FORMATO_ANINHADO:
        dados_planos = converter_para_estrutura_plana(validar_e_normalizar(dados))
    else:
        dados_planos = garantir_dados_planos(dados)

    resultado = calcular_impacto_capital_giro(
        dados_planos, ano, parametros_setoriais, provider, usar_fallback=False
    )
    resultado["dadosAninhados"] = converter_para_estrutura_aninhada(dados_planos)

    log_transformacao(dados, resultado, "Simulação Completa de Impacto do Split Payment")
    return resultado


class ResultadosSimulacao:
    """Last simulation result and its calculation memory, kept for later queries."""

    def __init__(self):
        self._resultado: Optional[dict] = None

    def registrar(self, resultado: dict) -> None:
        self._resultado = copy.deepcopy(resultado)

    def ultimo(self) -> Optional[dict]:
        return self._resultado

    def memoria(self) -> Optional[dict]:
        return (self._resultado or {}).get("memoriaCalculo")

    def limpar(self) -> None:
        self._resultado = None


resultados_simulacao = ResultadosSimulacao()
