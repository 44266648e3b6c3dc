"""Wire contracts (pydantic) for offer history input and report output."""
