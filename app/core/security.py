"""
Seguridad: clave compartida del cliente e identidad del caller para anti-abuso
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import Request

logger = logging.getLogger(__name__)


class UnauthorizedError(Exception):
    """Se lanza cuando falta la clave compartida o no coincide"""
    pass


def verify_api_key(provided_key: Optional[str], expected_key: str) -> None:
    """
    Compara la clave enviada por el cliente con la configurada

    Lanza UnauthorizedError si falta o es incorrecta
    """
    if not provided_key:
        raise UnauthorizedError("Missing API key")

    # compare_digest para no filtrar información por tiempos
    if not hmac.compare_digest(provided_key.encode("utf-8"), expected_key.encode("utf-8")):
        logger.warning("Rejected request with invalid API key")
        raise UnauthorizedError("Invalid API key")


def integrity_hash(ip: str, user_agent: str) -> str:
    """
    Digest SHA-256 de IP + user-agent

    Sirve solo para detectar patrones de abuso en el ledger,
    no identifica al jugador y nunca se devuelve al cliente.
    """
    return hashlib.sha256(f"{ip}{user_agent}".encode("utf-8")).hexdigest()


def client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    """IP del caller según el transporte (o el primer hop de X-Forwarded-For)"""
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client is None:
        return ""
    return request.client.host
