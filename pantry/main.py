from fastapi import FastAPI

from pantry.api.inventory import router as inventory_router
from pantry.api.receipts import router as receipts_router
from pantry.core.logging import configure_logging

configure_logging()

app = FastAPI(title="Pantry Reconciliation")

app.include_router(receipts_router)
app.include_router(inventory_router)


@app.get("/health")
def health():
    return {"status": "ok"}
