"""Users and credentials: persistence, verification and JWT issuance."""
