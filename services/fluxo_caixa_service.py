"""
Fluxo de caixa sob Split Payment.

Com o Split Payment, a fração implementada do imposto líquido é retida no
momento do recebimento e deixa de compor o capital de giro da empresa.
"""

import logging
from typing import Optional

from services.config import PRAZO_RECOLHIMENTO
from services.dados_service import garantir_dados_planos
from services.nucleo_calculo_service import (
    calcular_tempo_medio_capital_giro,
    normalizar_percentual,
    numero,
)
from services.sistema_atual_service import SistemaTributarioAtual

logger = logging.getLogger(__name__)


def calcular_fluxo_caixa_split_payment(
    dados,
    ano: int = 2026,
    parametros_setoriais: Optional[dict] = None,
    provider=None,
) -> dict:
    """
    Monthly cash flow when the split share of the net tax is withheld at
    payment time. Raises FormatError for nested input.

    Here capitalGiroDisponivel is the tax still held in cash until the due
    date (also exposed as valorImpostoEmCaixa). calcular_impacto_capital_giro
    replaces it with revenue minus net tax minus the withheld share, the same
    basis as the current regime.
    """
    dados = garantir_dados_planos(dados, "calcular_fluxo_caixa_split_payment")
    provider = provider if provider is not None else SistemaTributarioAtual()

    faturamento = max(0.0, numero(dados.get("faturamento")))
    aliquota = normalizar_percentual(dados.get("aliquota"))
    pmr = numero(dados.get("pmr"))
    perc_vista = normalizar_percentual(dados.get("percVista"))
    perc_prazo = normalizar_percentual(dados.get("percPrazo"))
    creditos = max(0.0, numero(dados.get("creditos")))

    percentual_implementacao = provider.obter_percentual_implementacao(ano, "splitPayment", parametros_setoriais)

    valor_imposto_total = faturamento * aliquota
    valor_imposto_liquido = max(0.0, valor_imposto_total - creditos)
    valor_imposto_split = valor_imposto_liquido * percentual_implementacao
    valor_imposto_normal = valor_imposto_liquido - valor_imposto_split
    capital_giro_disponivel = valor_imposto_normal if percentual_implementacao > 0 else valor_imposto_liquido

    # a retenção incide sobre cada forma de recebimento na proporção das vendas
    soma_percentuais = perc_vista + perc_prazo
    proporcao_vista = perc_vista / soma_percentuais if soma_percentuais > 0 else 0.0
    proporcao_prazo = perc_prazo / soma_percentuais if soma_percentuais > 0 else 0.0
    recebimento_vista = faturamento * perc_vista - valor_imposto_split * proporcao_vista
    recebimento_prazo = faturamento * perc_prazo - valor_imposto_split * proporcao_prazo

    impostos_atuais = provider.calcular_todos_impostos_atuais(
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

    tempo_medio = calcular_tempo_medio_capital_giro(pmr, PRAZO_RECOLHIMENTO, perc_vista, perc_prazo)
    beneficio_dias = capital_giro_disponivel / faturamento * tempo_medio if faturamento > 0 else 0.0

    return {
        "descricao": "Sistema IVA Dual com Split Payment",
        "faturamento": faturamento,
        "valorImpostoTotal": valor_imposto_total,
        "creditos": creditos,
        "valorImpostoLiquido": valor_imposto_liquido,
        "valorImpostoSplit": valor_imposto_split,
        "valorImpostoNormal": valor_imposto_normal,
        "recebimentoVista": recebimento_vista,
        "recebimentoPrazo": recebimento_prazo,
        "prazoRecolhimento": PRAZO_RECOLHIMENTO,
        "percentualImplementacao": percentual_implementacao,
        "capitalGiroDisponivel": capital_giro_disponivel,
        "valorImpostoEmCaixa": capital_giro_disponivel,
        "tempoMedioCapitalGiro": tempo_medio,
        "beneficioDiasCapitalGiro": beneficio_dias,
        "fluxoCaixaLiquido": recebimento_vista + recebimento_prazo,
        "impostosAtuais": impostos_atuais,
    }
