# apps/users/authentication.py
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, AuthenticationFailed
import logging

logger = logging.getLogger(__name__)


class CustomJWTAuthentication(JWTAuthentication):
    """
    Bearer-token authentication that resolves the token to a fresh user row
    and refuses accounts that have been deactivated since the token was issued.
    """

    def get_user(self, validated_token):
        try:
            user = super().get_user(validated_token)
        except AuthenticationFailed as e:
            logger.warning(f"Rejected token for user {validated_token.get('user_id')}: {e}")
            raise

        if not user.is_active:
            logger.warning(f"Inactive user attempted authentication: {user.email}")
            raise AuthenticationFailed("User not found or inactive", code="user_inactive")

        user.role = validated_token.get("role", getattr(user, "role", None))
        logger.debug(f"Authenticated user {user.email} (role: {user.role})")
        return user

    def get_validated_token(self, raw_token):
        try:
            return super().get_validated_token(raw_token)
        except InvalidToken:
            logger.info("Invalid or expired access token presented")
            raise
