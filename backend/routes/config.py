from fastapi import APIRouter, HTTPException
from settings import AppSettings, load_app_settings
from storage import save_settings
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/config", response_model=AppSettings)
def get_config():
    logger.info("GET /config - loading settings")
    cfg = load_app_settings()
    logger.info("GET /config - %d aliases, retake prefixes: %s", len(cfg.aliases), cfg.retake_prefixes)
    return cfg


@router.post("/config", response_model=AppSettings)
def post_config(cfg: AppSettings):
    logger.info("POST /config - %d aliases, retake prefixes: %s", len(cfg.aliases), cfg.retake_prefixes)
    prefixes = [p.strip() for p in cfg.retake_prefixes if p.strip()]
    if not cfg.aliases:
        logger.warning("POST /config - empty alias map rejected")
        raise HTTPException(status_code=400, detail="Header alias map must not be empty")
    rates = cfg.fee_rates.model_dump()
    negative = [name for name, value in rates.items() if value < 0]
    if negative:
        logger.warning("POST /config - negative fee rates: %s", negative)
        raise HTTPException(status_code=400, detail=f"Fee rates must not be negative: {', '.join(negative)}")

    cfg = cfg.model_copy(update={"retake_prefixes": prefixes})
    save_settings(cfg.model_dump())
    logger.info("POST /config - settings saved")
    return cfg
