"""
Signing key material for token issuance and its public JWKS form.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

from ..core.errors import ConfigError

logger = logging.getLogger(__name__)


ALGORITHM = "ES256"


def thumbprint(jwk: dict[str, Any]) -> str:
    """RFC 7638 thumbprint of an EC public JWK, used as the default key id."""
    members = {name: jwk[name] for name in ("crv", "kty", "x", "y")}
    canonical = json.dumps(members, separators=(",", ":"), sort_keys=True).encode()
    digest = hashlib.sha256(canonical).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


@dataclass
class SigningKey:
    """
    P-256 private key plus its key id.

    Usage:
        key = SigningKey.load("keys/private_key.pem")
        jwks = key.jwks()
    """
    private_key: ec.EllipticCurvePrivateKey
    kid: str

    algorithm = ALGORITHM

    @classmethod
    def _from_private_key(cls, private_key: Any, kid: Optional[str]) -> "SigningKey":
        if not isinstance(private_key, ec.EllipticCurvePrivateKey) or not isinstance(
            private_key.curve, ec.SECP256R1
        ):
            raise ConfigError("Signing key must be an EC P-256 private key for ES256")
        jwk = ECAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
        return cls(private_key=private_key, kid=kid or thumbprint(jwk))

    @classmethod
    def generate(cls, kid: Optional[str] = None) -> "SigningKey":
        """Create a new random key."""
        return cls._from_private_key(ec.generate_private_key(ec.SECP256R1()), kid)

    @classmethod
    def from_pem(cls, data: bytes, kid: Optional[str] = None) -> "SigningKey":
        try:
            private_key = serialization.load_pem_private_key(data, password=None)
        except ValueError as e:
            raise ConfigError(f"Invalid private key PEM: {e}") from e
        return cls._from_private_key(private_key, kid)

    @classmethod
    def load(cls, path: Path | str, kid: Optional[str] = None) -> "SigningKey":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Private key file not found: {path}")
        return cls.from_pem(path.read_bytes(), kid)

    @classmethod
    def from_settings(cls, private_key_path: Optional[str], kid: Optional[str] = None) -> "SigningKey":
        """Load the configured key, or generate an ephemeral one."""
        if private_key_path:
            key = cls.load(private_key_path, kid)
            logger.info(f"Loaded signing key '{key.kid}' from {private_key_path}")
            return key

        key = cls.generate(kid)
        logger.warning(
            f"PRIVATE_KEY_PATH not set, generated ephemeral signing key '{key.kid}'; "
            "tokens will not survive a restart"
        )
        return key

    def public_jwk(self) -> dict[str, Any]:
        jwk = ECAlgorithm.to_jwk(self.private_key.public_key(), as_dict=True)
        jwk.update({"kid": self.kid, "alg": self.algorithm, "use": "sig"})
        return jwk

    def jwks(self) -> dict[str, Any]:
        """Public JSON Web Key Set containing this key."""
        return {"keys": [self.public_jwk()]}

    def private_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def write(self, directory: Path | str) -> tuple[Path, Path]:
        """Write ``private_key.pem`` and ``jwks.json`` into a directory."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        pem_path = directory / "private_key.pem"
        jwks_path = directory / "jwks.json"
        pem_path.write_bytes(self.private_pem())
        jwks_path.write_text(json.dumps(self.jwks(), indent=2))
        return pem_path, jwks_path
