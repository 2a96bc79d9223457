from typing import Optional


class PipelineError(RuntimeError):
    """Erreur de base du pipeline OCR → transactions → Notion."""


class ConfigurationError(PipelineError):
    """Variable d'environnement (clé API, identifiant de base) manquante."""


class GatewayError(PipelineError):
    """Le service de génération de texte est injoignable ou a répondu en erreur."""

    def __init__(self, status: Optional[int], body: str = "") -> None:
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"Chat API injoignable: {body}")
        else:
            super().__init__(f"Chat API error {status}: {body}")


class MissingParameterError(PipelineError):
    """Paramètre obligatoire absent (ex: code devise vide)."""


class RateLookupError(PipelineError):
    """Le service de taux de change a échoué ou renvoyé une structure inattendue."""


class InvalidAmountError(PipelineError, ValueError):
    """Montant impossible à convertir en nombre."""


class StoreWriteError(PipelineError):
    """Échec d'écriture d'une transaction dans Notion."""
