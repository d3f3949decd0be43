from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from datetime import date
from pathlib import Path
from typing import Optional
import json
import os

app = FastAPI(title="Mock Card Data Store", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/store_stub") if os.path.exists("/store_stub") else Path(__file__).resolve().parents[2] / "store_stub"


def _load(kind: str, user_id: str) -> dict:
    file = DATA_DIR / f"{kind}_{user_id}.json"
    if not file.exists():
        raise HTTPException(status_code=404, detail="user not found")
    return json.loads(file.read_text())


@app.get("/health")
def health(): return {"status": "ok"}


@app.get("/store/transactions")
def get_transactions(user_id: str, start_date: date, end_date: date, card_id: Optional[str] = None):
    data = _load("transactions", user_id)
    transactions = [
        t for t in data["transactions"]
        if start_date <= date.fromisoformat(t["date"]) <= end_date and (card_id is None or t["card_id"] == card_id)
    ]
    return JSONResponse(content={"transactions": transactions})


@app.get("/store/budgets")
def get_budgets(user_id: str):
    return JSONResponse(content=_load("budgets", user_id))
