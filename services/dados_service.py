"""
Gerenciamento das estruturas de dados do simulador.

Duas representações convivem:
  aninhada : espelha o formulário (empresa, cicloFinanceiro, parametrosFiscais, ...)
  plana    : registro único consumido pelo motor de cálculo

A conversão entre elas é sempre explícita; o motor recusa dados aninhados.
"""

import copy
import logging
import re
from collections.abc import Mapping

from pydantic import BaseModel

from models.erros import FormatError
from models.schemas import DadosSimulacaoAninhada
from services.nucleo_calculo_service import normalizar_percentual, numero

logger = logging.getLogger(__name__)

FORMATO_PLANO = "plano"
FORMATO_ANINHADO = "aninhado"

TIPOS_EMPRESA = ("comercio", "industria", "servicos")
REGIMES_TRIBUTARIOS = ("simples", "presumido", "real")

ESTRUTURA_PADRAO = {
    "empresa": {
        "faturamento": 0,
        "margem": 0,
        "setor": "",
        "tipoEmpresa": "",
        "regime": "",
    },
    "cicloFinanceiro": {
        "pmr": 30,
        "pmp": 30,
        "pme": 30,
        "percVista": 0.3,
        "percPrazo": 0.7,
    },
    "parametrosFiscais": {
        "aliquota": 0.265,
        "tipoOperacao": "",
        "regimePisCofins": "",
        "creditos": {"pis": 0, "cofins": 0, "icms": 0, "ipi": 0, "cbs": 0, "ibs": 0},
        "debitos": {"pis": 0, "cofins": 0, "icms": 0, "ipi": 0, "iss": 0},
    },
    "parametrosSimulacao": {
        "cenario": "moderado",
        "taxaCrescimento": 0.05,
        "dataInicial": "2026-01-01",
        "dataFinal": "2033-12-31",
        "splitPayment": True,
    },
    "parametrosFinanceiros": {
        "taxaCapitalGiro": 0.021,
        "taxaAntecipacao": 0.018,
        "spreadBancario": 0.005,
    },
    "ivaConfig": {
        "cbs": 0.088,
        "ibs": 0.177,
        "categoriaIva": "standard",
        "reducaoEspecial": 0,
    },
    "estrategias": {
        "ajustePrecos": {
            "ativar": False, "percentualAumento": 5, "elasticidade": -1.2, "periodoAjuste": 3,
        },
        "renegociacaoPrazos": {
            "ativar": False, "aumentoPrazo": 15, "percentualFornecedores": 60,
            "contrapartidas": "nenhuma", "custoContrapartida": 0,
        },
        "antecipacaoRecebiveis": {
            "ativar": False, "percentualAntecipacao": 50, "taxaDesconto": 1.8, "prazoAntecipacao": 25,
        },
        "capitalGiro": {
            "ativar": False, "valorCaptacao": 100, "taxaJuros": 2.1, "prazoPagamento": 12, "carencia": 3,
        },
        "mixProdutos": {
            "ativar": False, "percentualAjuste": 30, "focoAjuste": "ciclo",
            "impactoReceita": -5, "impactoMargem": 3.5,
        },
        "meiosPagamento": {
            "ativar": False,
            "distribuicaoAtual": {"vista": 30, "prazo": 70},
            "distribuicaoNova": {"vista": 40, "dias30": 30, "dias60": 20, "dias90": 10},
            "taxaIncentivo": 3,
        },
    },
    "cronogramaImplementacao": {
        2026: 0.10, 2027: 0.25, 2028: 0.40, 2029: 0.55,
        2030: 0.70, 2031: 0.85, 2032: 0.95, 2033: 1.00,
    },
}


def obter_estrutura_aninhada_padrao() -> dict:
    return copy.deepcopy(ESTRUTURA_PADRAO)


def _como_dict(dados) -> dict:
    if isinstance(dados, BaseModel):
        return dados.model_dump()
    if isinstance(dados, Mapping):
        return dict(dados)
    raise FormatError(f"Dados de simulação devem ser um objeto, recebido {type(dados).__name__}")


def detectar_tipo_estrutura(dados) -> str:
    if isinstance(dados, DadosSimulacaoAninhada):
        return FORMATO_ANINHADO
    return FORMATO_ANINHADO if "empresa" in _como_dict(dados) else FORMATO_PLANO


def garantir_dados_planos(dados, contexto: str = "O motor de cálculo") -> dict:
    """Returns a flat dict copy of dados, raising FormatError for nested input."""
    if detectar_tipo_estrutura(dados) == FORMATO_ANINHADO:
        raise FormatError(
            f"{contexto} espera dados em formato plano. Use converter_para_estrutura_plana()."
        )
    return _como_dict(dados)


def extrair_valor_numerico(valor, padrao: float = 0.0) -> float:
    """
    Parses numbers coming from the form, including BRL strings such as
    "R$ 1.234,56". Anything unparseable becomes padrao.
    """
    if isinstance(valor, str):
        limpo = re.sub(r"[^\d,.-]", "", valor)
        if "," in limpo or re.fullmatch(r"-?\d{1,3}(\.\d{3})+", limpo):
            limpo = limpo.replace(".", "").replace(",", ".")
        try:
            return float(limpo)
        except ValueError:
            logger.warning("Valor numérico inválido: %r", valor)
            return padrao
    return numero(valor, padrao)


def _aliquota_iva(valor, padrao: float) -> float:
    # o formulário envia "8,8" (percentual) como texto
    if isinstance(valor, str):
        return extrair_valor_numerico(valor) / 100
    return numero(valor, 0.0) or padrao


def converter_para_estrutura_plana(dados) -> dict:
    """Flattens a nested simulation record into the engine's input record."""
    aninhado = _como_dict(dados)
    if "empresa" not in aninhado:
        return aninhado

    empresa = aninhado.get("empresa") or {}
    ciclo = aninhado.get("cicloFinanceiro") or {}
    fiscais = aninhado.get("parametrosFiscais") or {}
    simulacao = aninhado.get("parametrosSimulacao") or {}
    financeiros = aninhado.get("parametrosFinanceiros") or {}
    iva = aninhado.get("ivaConfig") or {}

    plano = {
        "faturamento": extrair_valor_numerico(empresa.get("faturamento")),
        "margem": numero(empresa.get("margem")),
        "setor": empresa.get("setor") or "",
        "tipoEmpresa": empresa.get("tipoEmpresa") or "",
        "regime": empresa.get("regime") or "",
        "nomeEmpresa": empresa.get("nome") or "",
        "pmr": numero(ciclo.get("pmr")) or 30,
        "pmp": numero(ciclo.get("pmp")) or 30,
        "pme": numero(ciclo.get("pme")) or 30,
        "percVista": numero(ciclo.get("percVista")) or 0.3,
        "percPrazo": numero(ciclo.get("percPrazo")) or 0.7,
        "aliquota": numero(fiscais.get("aliquota"), 0.265),
        "tipoOperacao": fiscais.get("tipoOperacao") or "",
        "regimePisCofins": fiscais.get("regimePisCofins") or "",
    }

    creditos = fiscais.get("creditos") or {}
    debitos = fiscais.get("debitos") or {}
    composicao = fiscais.get("composicaoTributaria") or {}
    sped_creditos = composicao.get("creditos") or {}
    sped_debitos = composicao.get("debitos") or {}

    # valores do SPED prevalecem sobre os informados manualmente
    for imposto in ("pis", "cofins", "icms", "ipi"):
        plano[f"creditos{imposto.upper()}"] = numero(sped_creditos.get(imposto)) or numero(creditos.get(imposto))
    plano["creditosCBS"] = numero(creditos.get("cbs"))
    plano["creditosIBS"] = numero(creditos.get("ibs"))
    for imposto in ("pis", "cofins", "icms", "ipi", "iss"):
        plano[f"debito{imposto.upper()}"] = numero(sped_debitos.get(imposto)) or numero(debitos.get(imposto))

    plano["creditos"] = sum(plano[f"creditos{i}"] for i in ("PIS", "COFINS", "ICMS", "IPI", "CBS", "IBS"))
    plano["debitos"] = sum(plano[f"debito{i}"] for i in ("PIS", "COFINS", "ICMS", "IPI", "ISS"))

    plano.update({
        "cenario": simulacao.get("cenario") or "moderado",
        "taxaCrescimento": numero(simulacao.get("taxaCrescimento")) or 0.05,
        "dataInicial": simulacao.get("dataInicial") or "2026-01-01",
        "dataFinal": simulacao.get("dataFinal") or "2033-12-31",
        "splitPayment": simulacao.get("splitPayment") is not False,
        "taxaCapitalGiro": numero(financeiros.get("taxaCapitalGiro")) or 0.021,
        "taxaAntecipacao": numero(financeiros.get("taxaAntecipacao")) or 0.018,
        "spreadBancario": numero(financeiros.get("spreadBancario")) or 0.005,
        "aliquotaCBS": _aliquota_iva(iva.get("cbs"), 0.088),
        "aliquotaIBS": _aliquota_iva(iva.get("ibs"), 0.177),
        "categoriaIVA": iva.get("categoriaIva") or "standard",
        "reducaoEspecial": numero(iva.get("reducaoEspecial")),
    })

    if aninhado.get("cronogramaImplementacao"):
        plano["cronogramaImplementacao"] = dict(aninhado["cronogramaImplementacao"])

    plano["serviceCompany"] = plano["tipoEmpresa"] == "servicos"
    plano["cumulativeRegime"] = plano["regimePisCofins"] == "cumulativo"
    if composicao or aninhado.get("dadosSpedImportados"):
        plano["dadosSpedImportados"] = True

    log_transformacao(aninhado, plano, "Conversão para estrutura plana")
    return plano


def converter_para_estrutura_aninhada(dados) -> dict:
    """Builds the nested (form) representation of a flat record."""
    plano = _como_dict(dados)
    if "empresa" in plano:
        return copy.deepcopy(plano)

    def valor(chave, padrao):
        return plano[chave] if plano.get(chave) is not None else padrao

    aninhado = obter_estrutura_aninhada_padrao()
    aninhado["empresa"] = {
        "faturamento": valor("faturamento", 0),
        "margem": valor("margem", 0),
        "setor": plano.get("setor") or "",
        "tipoEmpresa": plano.get("tipoEmpresa") or "",
        "regime": plano.get("regime") or "",
    }
    aninhado["cicloFinanceiro"] = {
        "pmr": valor("pmr", 30),
        "pmp": valor("pmp", 30),
        "pme": valor("pme", 30),
        "percVista": valor("percVista", 0.3),
        "percPrazo": valor("percPrazo", 0.7),
    }
    aninhado["parametrosFiscais"] = {
        "aliquota": valor("aliquota", 0.265),
        "tipoOperacao": plano.get("tipoOperacao") or "",
        "regimePisCofins": plano.get("regimePisCofins") or "",
        "creditos": {
            "pis": valor("creditosPIS", 0),
            "cofins": valor("creditosCOFINS", 0),
            "icms": valor("creditosICMS", 0),
            "ipi": valor("creditosIPI", 0),
            "cbs": valor("creditosCBS", 0),
            "ibs": valor("creditosIBS", 0),
        },
        "debitos": {
            "pis": valor("debitoPIS", 0),
            "cofins": valor("debitoCOFINS", 0),
            "icms": valor("debitoICMS", 0),
            "ipi": valor("debitoIPI", 0),
            "iss": valor("debitoISS", 0),
        },
    }
    if plano.get("dadosSpedImportados"):
        fiscais = aninhado["parametrosFiscais"]
        aninhado["parametrosFiscais"]["composicaoTributaria"] = {
            "debitos": dict(fiscais["debitos"]),
            "creditos": {**{k: fiscais["creditos"][k] for k in ("pis", "cofins", "icms", "ipi")}, "iss": 0},
        }

    aninhado["parametrosSimulacao"] = {
        "cenario": plano.get("cenario") or "moderado",
        "taxaCrescimento": valor("taxaCrescimento", 0.05),
        "dataInicial": plano.get("dataInicial") or "2026-01-01",
        "dataFinal": plano.get("dataFinal") or "2033-12-31",
        "splitPayment": plano.get("splitPayment") is not False,
    }
    aninhado["parametrosFinanceiros"] = {
        "taxaCapitalGiro": valor("taxaCapitalGiro", 0.021),
        "taxaAntecipacao": valor("taxaAntecipacao", 0.018),
        "spreadBancario": valor("spreadBancario", 0.005),
    }
    aninhado["ivaConfig"] = {
        "cbs": valor("aliquotaCBS", 0.088),
        "ibs": valor("aliquotaIBS", 0.177),
        "categoriaIva": plano.get("categoriaIVA") or "standard",
        "reducaoEspecial": valor("reducaoEspecial", 0),
    }
    if plano.get("cronogramaImplementacao"):
        aninhado["cronogramaImplementacao"] = dict(plano["cronogramaImplementacao"])

    log_transformacao(plano, aninhado, "Conversão para estrutura aninhada")
    return aninhado


def _validar_empresa(empresa: dict) -> None:
    empresa["faturamento"] = max(0.0, extrair_valor_numerico(empresa.get("faturamento")))
    empresa["margem"] = min(1.0, max(0.0, normalizar_percentual(empresa.get("margem"))))
    if empresa.get("tipoEmpresa") not in TIPOS_EMPRESA:
        empresa["tipoEmpresa"] = ""
    if empresa.get("regime") not in REGIMES_TRIBUTARIOS:
        empresa["regime"] = ""


def _validar_ciclo_financeiro(ciclo: dict) -> None:
    for prazo in ("pmr", "pmp", "pme"):
        ciclo[prazo] = max(0.0, numero(ciclo.get(prazo)))

    perc_vista = min(1.0, max(0.0, normalizar_percentual(ciclo.get("percVista")) or 0.3))
    perc_prazo = min(1.0, max(0.0, normalizar_percentual(ciclo.get("percPrazo")) or 0.7))
    soma = perc_vista + perc_prazo
    if abs(soma - 1) > 0.01:
        logger.warning("percVista + percPrazo = %.4f, ajustando percPrazo para 1 - percVista", soma)
        perc_prazo = 1 - perc_vista
    ciclo["percVista"] = perc_vista
    ciclo["percPrazo"] = perc_prazo


def _validar_parametros_fiscais(fiscais: dict) -> None:
    fiscais["aliquota"] = min(1.0, max(0.0, normalizar_percentual(fiscais.get("aliquota"), 0.265)))
    for secao in ("creditos", "debitos"):
        valores = fiscais.get(secao) or {}
        padrao = ESTRUTURA_PADRAO["parametrosFiscais"][secao]
        fiscais[secao] = {
            imposto: max(0.0, extrair_valor_numerico(valores.get(imposto, 0)))
            for imposto in {**padrao, **valores}
        }


def validar_e_normalizar(dados) -> dict:
    """
    Validates a nested record and returns a normalised copy: missing sections
    are filled from ESTRUTURA_PADRAO and percentages are brought to 0-1.
    When percVista + percPrazo is not 1, percPrazo becomes 1 - percVista.
    """
    resultado = copy.deepcopy(_como_dict(dados))

    for secao, padrao in ESTRUTURA_PADRAO.items():
        if not resultado.get(secao):
            resultado[secao] = copy.deepcopy(padrao)
        elif isinstance(padrao, dict) and secao != "cronogramaImplementacao":
            resultado[secao] = {**copy.deepcopy(padrao), **resultado[secao]}

    _validar_empresa(resultado["empresa"])
    _validar_ciclo_financeiro(resultado["cicloFinanceiro"])
    _validar_parametros_fiscais(resultado["parametrosFiscais"])

    simulacao = resultado["parametrosSimulacao"]
    if simulacao.get("cenario") not in ("conservador", "moderado", "otimista", "personalizado"):
        simulacao["cenario"] = "moderado"
    simulacao["taxaCrescimento"] = normalizar_percentual(simulacao.get("taxaCrescimento"), 0.05)

    financeiros = resultado["parametrosFinanceiros"]
    for chave in ("taxaCapitalGiro", "taxaAntecipacao", "spreadBancario"):
        financeiros[chave] = normalizar_percentual(
            financeiros.get(chave), ESTRUTURA_PADRAO["parametrosFinanceiros"][chave]
        )

    iva = resultado["ivaConfig"]
    iva["cbs"] = _aliquota_iva(iva.get("cbs"), 0.088)
    iva["ibs"] = _aliquota_iva(iva.get("ibs"), 0.177)
    iva["reducaoEspecial"] = normalizar_percentual(iva.get("reducaoEspecial"))

    log_transformacao(dados, resultado, "Validação e normalização")
    return resultado


def converter_dados_simulador(dados, formato_destino: str) -> dict:
    if formato_destino not in (FORMATO_PLANO, FORMATO_ANINHADO):
        raise ValueError(f"Formato de destino inválido: {formato_destino}. Use 'plano' ou 'aninhado'.")

    if detectar_tipo_estrutura(dados) == formato_destino:
        return _como_dict(dados)
    if formato_destino == FORMATO_PLANO:
        return converter_para_estrutura_plana(dados)
    return converter_para_estrutura_aninhada(dados)


def formatar_moeda(valor) -> str:
    """Formats a value in reais as BRL, e.g. 1234.5 -> "R$ 1.234,50"."""
    valor = numero(valor)
    texto = f"{abs(valor):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"-R$ {texto}" if valor < 0 else f"R$ {texto}"


def formatar_percentual(valor, casas: int = 2) -> str:
    """Formats a value already in percent, e.g. 12.345 -> "12,35%"."""
    return f"{numero(valor):.{casas}f}".replace(".", ",") + "%"


def _resumir(dados) -> dict:
    if not isinstance(dados, Mapping):
        return {"tipo": type(dados).__name__}
    return {
        "chaves": len(dados),
        "faturamento": dados.get("faturamento", (dados.get("empresa") or {}).get("faturamento")),
        "formato": FORMATO_ANINHADO if "empresa" in dados else FORMATO_PLANO,
    }


def log_transformacao(origem, destino, contexto: str) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Transformação de dados: %s | origem=%s destino=%s", contexto, _resumir(origem), _resumir(destino))
