"""JWT Token Validation"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """Bearer token validator for back-office sessions"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate JWT token

        In DEVELOPMENT mode, the signature is not verified so that tokens
        minted by the front-end dev server can be used as-is. Expiry is
        still enforced.

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            if settings.environment.lower() in ["development", "dev", "local"]:
                return jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                    }
                )

            options = {"verify_exp": True, "verify_aud": bool(settings.jwt_audience)}
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=settings.jwt_audience or None,
                options=options,
            )

        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.error(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Extract actor context from validated token

        Args:
            token: Bearer token

        Returns:
            ActorContext with user information
        """
        claims = self.validate_token(token)

        user_id = claims.get("sub") or claims.get("user_id") or ""
        if not user_id:
            logger.warning(f"No subject in token claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user from token")

        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return ActorContext(
            user_id=str(user_id),
            email=claims.get("email"),
            display_name=claims.get("name") or str(user_id),
            roles=[str(r).lower() for r in roles],
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def create_access_token(claims: Dict[str, Any]) -> str:
    """Sign claims with the configured secret (used by scripts and tests)"""
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header

    Args:
        authorization: Authorization header value

    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    return get_jwt_validator().get_actor_context(authorization)
