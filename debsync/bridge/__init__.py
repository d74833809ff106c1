"""Bridge layer between debsync and external signature tooling.

Modules
-------
verifiers
    ``SignatureVerifier`` protocol with a GnuPG backend (``gpg --verify``
    against a dedicated keyring) and an Ed25519 backend (PyNaCl).

Every backend fails closed: anything short of a validated signature raises
``VerificationError``.
"""
