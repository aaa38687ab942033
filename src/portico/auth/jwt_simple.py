"""ES256 access tokens for the dev provider.

Tokens are signed with a P-256 private key and verified with its public
half. Without a configured PEM key a throwaway keypair is generated, so dev
tokens do not survive a restart.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt as pyjwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

DEV_ISSUER = "portico-dev"


class JWTManager:
    """Issues and verifies dev access tokens.

    Every token carries iss, aud, sub, iat and exp; verify() checks all of
    them against this manager's key, issuer and audience.
    """

    algorithm = "ES256"

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        issuer: str = DEV_ISSUER,
        audience: str = DEV_ISSUER,
    ):
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def ephemeral(cls, **kwargs: Any) -> "JWTManager":
        """Create a manager with a freshly generated P-256 keypair."""
        return cls(ec.generate_private_key(ec.SECP256R1()), **kwargs)

    @classmethod
    def from_pem(cls, pem: str | bytes, **kwargs: Any) -> "JWTManager":
        """Create a manager from an unencrypted PEM private key.

        Raises:
            ValueError: Not a PEM-encoded EC private key
        """
        data = pem.encode("ascii") if isinstance(pem, str) else pem
        key = serialization.load_pem_private_key(data, password=None)
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise ValueError("dev signing key must be an EC private key")
        return cls(key, **kwargs)

    def public_pem(self) -> str:
        return self._public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def issue(self, subject: str, ttl: timedelta, **claims: Any) -> str:
        """Sign a token for subject valid for ttl.

        Example:
            >>> manager = JWTManager.ephemeral()
            >>> token = manager.issue("dev-user", timedelta(minutes=5), email="dev@example.com")
            >>> manager.verify(token)["sub"]
            'dev-user'
        """
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iss": self.issuer,
            "aud": self.audience,
            "sub": subject,
            "iat": now,
            "exp": now + ttl,
        }
        return pyjwt.encode(payload, self._private_key, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Return the claims of a token issued by this manager.

        Raises:
            jwt.ExpiredSignatureError: Token expired
            jwt.InvalidTokenError: Bad signature, issuer or audience
        """
        return pyjwt.decode(
            token,
            self._public_key,
            algorithms=[self.algorithm],
            audience=self.audience,
            issuer=self.issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
