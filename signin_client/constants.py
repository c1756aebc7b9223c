"""Storage keys, endpoints and user-facing messages."""

# Encrypted storage keys, always written and cleared together
STORAGE_KEY_USER = "user"
STORAGE_KEY_AUTH_SOURCE = "auth_source"
STORAGE_KEY_ACCESS_TOKEN = "accessToken"
STORAGE_KEY_REFRESH_TOKEN = "refreshToken"

CREDENTIAL_KEYS = (
    STORAGE_KEY_USER,
    STORAGE_KEY_AUTH_SOURCE,
    STORAGE_KEY_ACCESS_TOKEN,
    STORAGE_KEY_REFRESH_TOKEN,
)

# Backend endpoints
ENDPOINT_LOGIN = "/login"
ENDPOINT_REGISTER = "/register"
ENDPOINT_GOOGLE_LOGIN = "/google-login"
ENDPOINT_FORGOT_PASSWORD = "/forgot-password"
ENDPOINT_RESET_PASSWORD = "/reset-password/{token}"
ENDPOINT_REFRESH_TOKEN = "/refresh-token"
ENDPOINT_LOGOUT = "/logout"

# HTTP status codes
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_SERVICE_UNAVAILABLE = 503

AUTHORIZATION_HEADER = "Authorization"

# Messages shown by the UI layer
MSG_LOGIN_SUCCESS = "Vous êtes connecté !"
MSG_REGISTER_SUCCESS = "Votre compte a été créé."
MSG_GENERIC_ERROR = "Une erreur est survenue"
MSG_REGISTER_FAILED = "Erreur lors de l’inscription"
MSG_INVALID_INPUT = "Les informations saisies sont invalides."
MSG_GOOGLE_FAILED = "Impossible de se connecter avec Google."
MSG_FORGOT_SENT = "Un e-mail de réinitialisation a été envoyé."
MSG_FORGOT_FAILED = "Erreur lors de l'envoi de l'e-mail de réinitialisation."
MSG_REQUEST_UNAVAILABLE = "Impossible de traiter votre demande."
MSG_RESET_SUCCESS = "Votre mot de passe a été réinitialisé avec succès."
MSG_RESET_FAILED = "Impossible de réinitialiser le mot de passe."
MSG_RESET_TOKEN_MISSING = "Le token de réinitialisation est manquant."
MSG_NO_USER = "Aucun utilisateur connecté."
MSG_LOGOUT_SUCCESS = "Vous êtes déconnecté."
MSG_LOGOUT_FAILED = "Erreur lors de la déconnexion."
