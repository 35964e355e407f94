"""
Sistema tributário atual (PIS, COFINS, ICMS, IPI, ISS).

Fornece ao motor de cálculo o fluxo de caixa do regime vigente e o
percentual de implementação da transição, através da interface
TaxSystemProvider.
"""

import logging
from typing import Optional, Protocol

from services.config import PRAZO_RECOLHIMENTO, TAXA_CAPITAL_GIRO_PADRAO
from services.cronograma_service import obter_percentual_implementacao
from services.dados_service import garantir_dados_planos
from services.nucleo_calculo_service import (
    calcular_tempo_medio_capital_giro,
    normalizar_percentual,
    numero,
)

logger = logging.getLogger(__name__)

ALIQUOTAS_PADRAO = {
    "pis": 0.0165,
    "pis_cumulativo": 0.0065,
    "cofins": 0.076,
    "cofins_cumulativo": 0.03,
    "icms": {
        "interna": 0.18,
        "interestadual": {
            "geral": 0.12,
            "sul_sudeste_para_norte_nordeste_centro_oeste": 0.07,
        },
    },
    "ipi": 0.10,
    "iss": 0.05,
    "irpj": 0.15,
    "csll": 0.09,
}

# margem operacional assumida quando não informada
MARGEM_PADRAO = 0.15


class TaxSystemProvider(Protocol):
    def obter_percentual_implementacao(
        self, ano, tipo: str = "splitPayment", parametros_setoriais: Optional[dict] = None
    ) -> float: ...

    def calcular_fluxo_caixa_atual(self, dados: dict) -> dict: ...

    def calcular_todos_impostos_atuais(
        self,
        receita: float,
        empresa_servicos: bool = False,
        regime_cumulativo: bool = False,
        creditos: Optional[dict] = None,
    ) -> dict: ...


def calcular_pis(receita, aliquota=ALIQUOTAS_PADRAO["pis"], regime_cumulativo: bool = False, creditos=0) -> float:
    receita = numero(receita)
    if regime_cumulativo:
        # regime cumulativo não admite créditos
        return receita * ALIQUOTAS_PADRAO["pis_cumulativo"]
    aliquota = numero(aliquota, ALIQUOTAS_PADRAO["pis"])
    return max(0.0, receita * aliquota - max(0.0, numero(creditos)))


def calcular_cofins(receita, aliquota=ALIQUOTAS_PADRAO["cofins"], regime_cumulativo: bool = False, creditos=0) -> float:
    receita = numero(receita)
    if regime_cumulativo:
        return receita * ALIQUOTAS_PADRAO["cofins_cumulativo"]
    aliquota = numero(aliquota, ALIQUOTAS_PADRAO["cofins"])
    return max(0.0, receita * aliquota - max(0.0, numero(creditos)))


def calcular_icms(receita, aliquota=ALIQUOTAS_PADRAO["icms"]["interna"], creditos=0,
                  substituicao_tributaria: bool = False) -> float:
    if substituicao_tributaria:
        # ICMS-ST já recolhido na etapa anterior
        return 0.0
    receita = numero(receita)
    aliquota = numero(aliquota, ALIQUOTAS_PADRAO["icms"]["interna"])
    return max(0.0, receita * aliquota - max(0.0, numero(creditos)))


def calcular_ipi(valor_produto, aliquota=ALIQUOTAS_PADRAO["ipi"], creditos=0) -> float:
    valor_produto = numero(valor_produto)
    aliquota = numero(aliquota, ALIQUOTAS_PADRAO["ipi"])
    return max(0.0, valor_produto * aliquota - max(0.0, numero(creditos)))


def calcular_iss(valor_servico, aliquota=ALIQUOTAS_PADRAO["iss"]) -> float:
    return numero(valor_servico) * numero(aliquota, ALIQUOTAS_PADRAO["iss"])


def calcular_todos_impostos_atuais(
    receita,
    empresa_servicos: bool = False,
    regime_cumulativo: bool = False,
    creditos: Optional[dict] = None,
) -> dict:
    """
    Legacy taxes on a revenue figure.
    Service companies pay ISS; everyone else pays ICMS and IPI.
    """
    creditos = creditos or {}
    receita = numero(receita)

    impostos = {
        "pis": calcular_pis(receita, regime_cumulativo=regime_cumulativo, creditos=creditos.get("pis", 0)),
        "cofins": calcular_cofins(receita, regime_cumulativo=regime_cumulativo, creditos=creditos.get("cofins", 0)),
    }
    if empresa_servicos:
        impostos["iss"] = calcular_iss(receita)
    else:
        impostos["icms"] = calcular_icms(receita, creditos=creditos.get("icms", 0))
        impostos["ipi"] = calcular_ipi(receita, creditos=creditos.get("ipi", 0))

    impostos["total"] = sum(impostos.values())
    return impostos


def calcular_impacto_margem(dados: dict, diferenca_capital_giro, taxa_padrao: Optional[float] = None) -> dict:
    """Monthly and annual cost of financing the capital gap and its bite on the operating margin."""
    diferenca_capital_giro = numero(diferenca_capital_giro)
    faturamento = max(0.0, numero(dados.get("faturamento")))
    margem = normalizar_percentual(dados.get("margem")) or MARGEM_PADRAO
    taxa = normalizar_percentual(dados.get("taxaCapitalGiro")) or (taxa_padrao or TAXA_CAPITAL_GIRO_PADRAO)

    custo_mensal = abs(diferenca_capital_giro) * taxa
    impacto_percentual = custo_mensal / faturamento * 100 if faturamento > 0 else 0.0

    return {
        "custoMensalCapitalGiro": custo_mensal,
        "custoAnualCapitalGiro": custo_mensal * 12,
        "impactoPercentual": impacto_percentual,
        "margemOriginal": margem,
        "margemAjustada": max(0.0, margem - impacto_percentual / 100),
        "percentualReducaoMargem": impacto_percentual / (margem * 100) * 100 if margem > 0 else 0.0,
    }


class SistemaTributarioAtual:
    """Default TaxSystemProvider backed by the statutory rates and schedules."""

    def __init__(self, prazo_recolhimento: int = PRAZO_RECOLHIMENTO):
        self.prazo_recolhimento = prazo_recolhimento

    def obter_percentual_implementacao(self, ano, tipo="splitPayment", parametros_setoriais=None) -> float:
        return obter_percentual_implementacao(ano, tipo, parametros_setoriais)

    def calcular_todos_impostos_atuais(self, receita, empresa_servicos=False, regime_cumulativo=False,
                                       creditos=None) -> dict:
        return calcular_todos_impostos_atuais(receita, empresa_servicos, regime_cumulativo, creditos)

    def calcular_fluxo_caixa_atual(self, dados) -> dict:
        dados = garantir_dados_planos(dados)

        faturamento = max(0.0, numero(dados.get("faturamento")))
        aliquota = min(1.0, max(0.0, normalizar_percentual(dados.get("aliquota"), 0.265)))
        pmr = max(0.0, numero(dados.get("pmr")) or 30)
        perc_vista = min(1.0, max(0.0, normalizar_percentual(dados.get("percVista")) or 0.3))
        perc_prazo = min(1.0, max(0.0, normalizar_percentual(dados.get("percPrazo")) or 0.7))
        creditos = max(0.0, numero(dados.get("creditos")))

        valor_imposto_total = faturamento * aliquota
        valor_imposto_liquido = max(0.0, valor_imposto_total - creditos)

        # sem retenção, o caixa disponível é a receita menos o imposto a recolher
        capital_giro_disponivel = faturamento - valor_imposto_liquido

        tempo_medio = calcular_tempo_medio_capital_giro(pmr, self.prazo_recolhimento, perc_vista, perc_prazo)
        beneficio_dias = capital_giro_disponivel / faturamento * tempo_medio if faturamento > 0 else 0.0

        impostos = self.calcular_todos_impostos_atuais(
            faturamento,
            empresa_servicos=dados.get("tipoEmpresa") == "servicos",
            regime_cumulativo=dados.get("regimePisCofins") == "cumulativo",
            creditos={
                "pis": numero(dados.get("creditosPIS")),
                "cofins": numero(dados.get("creditosCOFINS")),
                "icms": numero(dados.get("creditosICMS")),
                "ipi": numero(dados.get("creditosIPI")),
            },
        )

        return {
            "descricao": "Sistema Tributário Atual",
            "faturamento": faturamento,
            "valorImpostoTotal": valor_imposto_total,
            "creditos": creditos,
            "valorImpostoLiquido": valor_imposto_liquido,
            "recebimentoVista": faturamento * perc_vista,
            "recebimentoPrazo": faturamento * perc_prazo,
            "prazoRecolhimento": self.prazo_recolhimento,
            "capitalGiroDisponivel": capital_giro_disponivel,
            "tempoMedioCapitalGiro": tempo_medio,
            "beneficioDiasCapitalGiro": beneficio_dias,
            "fluxoCaixaLiquido": faturamento - valor_imposto_liquido,
            "impostos": impostos,
        }
