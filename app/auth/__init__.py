from app.auth.signer import AUDIENCE, ISSUER, AssertionClaims, AssertionSigner, decode_private_key

__all__ = ["AUDIENCE", "ISSUER", "AssertionClaims", "AssertionSigner", "decode_private_key"]
