import logging
import os

from fastapi import Header, HTTPException, status

logger = logging.getLogger("photobooth.security")


def _is_dev_env() -> bool:
    return os.getenv("ENV", "dev").lower() in {"dev", "development", "local"}


def _check_key(provided: str | None, env_names: tuple[str, ...], role: str) -> None:
    configured = [os.getenv(name, "") for name in env_names]
    configured = [key for key in configured if key]

    if not configured:
        if _is_dev_env():
            logger.warning(
                "%s is not set in dev; allowing %s request without key.",
                " / ".join(env_names),
                role,
            )
            return
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "ADMIN_AUTH_NOT_CONFIGURED",
                "message": f"{role.capitalize()} API key is not configured.",
            },
        )

    if provided not in configured:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "INVALID_ADMIN_API_KEY",
                "message": f"Invalid {role} API key.",
            },
        )


def require_admin_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    _check_key(x_admin_key, ("ADMIN_API_KEY",), "admin")


def require_staff_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    # Staff routes also accept the admin key.
    _check_key(x_admin_key, ("ADMIN_API_KEY", "STAFF_API_KEY"), "staff")
