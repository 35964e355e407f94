class FormatError(ValueError):
    """Dados recebidos no formato errado (aninhado onde se espera plano, ou vice-versa)."""


class CalculationError(Exception):
    """Falha dentro de um cálculo orquestrado (impacto, projeção)."""

    def __init__(self, message: str, etapa: str = ""):
        super().__init__(message)
        self.etapa = etapa
