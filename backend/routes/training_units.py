import time
from typing import List

from fastapi import APIRouter, HTTPException
from models import TrainingUnit
from storage import load_training_units, save_training_units
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _upsert(units: List[dict], unit: TrainingUnit) -> List[dict]:
    data = unit.model_dump()
    if data.get("created_at") is None:
        data["created_at"] = int(time.time() * 1000)
    for i, existing in enumerate(units):
        if existing.get("id") == unit.id:
            # id and creation time are kept; code and name are replaced
            units[i] = {**existing, "code": unit.code, "name": unit.name}
            return units
    units.append(data)
    return units


def _validate(unit: TrainingUnit):
    if not unit.id.strip() or not unit.code.strip() or not unit.name.strip():
        raise HTTPException(status_code=400, detail="Training unit requires id, code and name")


@router.get("/training-units", response_model=List[TrainingUnit])
def get_training_units():
    logger.info("GET /training-units")
    units = load_training_units()
    logger.info("GET /training-units - returned %d units", len(units))
    return units


@router.post("/training-units", response_model=TrainingUnit)
def post_training_unit(unit: TrainingUnit):
    logger.info("POST /training-units - id: %s, code: %s", unit.id, unit.code)
    _validate(unit)
    units = _upsert(load_training_units(), unit)
    save_training_units(units)
    return next(u for u in units if u["id"] == unit.id)


@router.post("/training-units/batch")
def post_training_units_batch(units: List[TrainingUnit]):
    logger.info("POST /training-units/batch - %d units", len(units))
    for unit in units:
        _validate(unit)
    stored = load_training_units()
    for unit in units:
        stored = _upsert(stored, unit)
    save_training_units(stored)
    return {"status": "ok", "imported": len(units)}


@router.delete("/training-units/{unit_id}")
def delete_training_unit(unit_id: str):
    logger.info("DELETE /training-units/%s", unit_id)
    units = load_training_units()
    remaining = [u for u in units if u.get("id") != unit_id]
    save_training_units(remaining)
    logger.info("DELETE /training-units/%s - remaining: %d", unit_id, len(remaining))
    return {"status": "ok"}
