"""gengate daemon: FastAPI service, ledger, dedup and metering gate."""
