"""
Taxonomie des erreurs du checkout.

Chaque erreur porte:
- un message public (renvoyé au front sous la forme {"error": ...}),
- un détail interne optionnel (journalisé uniquement, jamais renvoyé).

Les vues laissent remonter ces erreurs; le handler de backend.app_setup.exceptions
les normalise en HTTP 500 + {"error": message_public}.
"""
from typing import Optional


class CheckoutError(Exception):
    status_code = 500
    public_message = "Erreur interne"

    def __init__(self, detail: Optional[str] = None, *, public_message: Optional[str] = None):
        super().__init__(detail or public_message or self.public_message)
        self.detail = detail
        if public_message:
            self.public_message = public_message


# --- Validation: rejet avant tout effet de bord ---

class ValidationError(CheckoutError):
    public_message = "Requête invalide"

    def __init__(self, detail: Optional[str] = None, **kwargs):
        # Les messages de validation ne contiennent rien d'interne: on les expose tels quels
        kwargs.setdefault("public_message", detail)
        super().__init__(detail, **kwargs)


class EmptyCartError(ValidationError):
    public_message = "Panier vide"

    def __init__(self, detail: str = "Panier vide"):
        super().__init__(detail)


class TotalMismatchError(ValidationError):
    public_message = "Montant total incohérent avec le panier"


class MissingSessionError(ValidationError):
    public_message = "Identifiant de session requis"

    def __init__(self, detail: str = "Identifiant de session requis"):
        super().__init__(detail)


# --- Configuration: fatal, intervention opérateur requise ---

class UpstreamConfigurationError(CheckoutError):
    public_message = "Service de paiement non configuré"


# --- Persistance (Supabase) ---

class PersistenceError(CheckoutError):
    public_message = "Erreur d'enregistrement de la commande"


class OrderCreationError(PersistenceError):
    public_message = "Impossible de créer la commande"


class OrderItemsCreationError(PersistenceError):
    public_message = "Impossible d'enregistrer les articles de la commande"


class OrderUpdateError(PersistenceError):
    public_message = "Impossible de mettre à jour la commande"


# --- Prestataire de paiement (Stripe) ---

class ProviderError(CheckoutError):
    public_message = "Erreur du prestataire de paiement"


class SessionNotFoundError(ProviderError):
    public_message = "Session de paiement introuvable"
