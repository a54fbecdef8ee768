# analysis.py
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import crud
from errors import ScreeningError
from imaging import DecodedImage, decode_image
from logging_config import get_logger
from models import ScanStatus
from prompt import compose_prompt
from response_parser import parse_analysis
from scan_store import ScanStore
from schemas import HistopathologicalData
from vision_client import VisionModel

logger = get_logger(__name__)


@dataclass
class AnalysisOutcome:
    analysis: str
    confidence: int
    risk: str
    raw_analysis: str
    scan_id: Optional[str] = None


# ----------------------------
# Synchronous analysis (POST /api/analyze)
# ----------------------------
def run_analysis(
    image_base64: Optional[str],
    history: Optional[HistopathologicalData],
    user_id: str,
    model: VisionModel,
    store: ScanStore,
) -> AnalysisOutcome:
    """
    decode image -> compose prompt -> call model -> parse -> record.

    Raises InvalidImageError (400) or AnalysisError (500); nothing is stored
    when either is raised.
    """
    image = decode_image(image_base64 or "")
    prompt = compose_prompt(history)

    logger.info("Analysis started", user_id=user_id, has_history=history is not None)
    text = model.analyze(prompt, image)
    result = parse_analysis(text)

    scan_id = store.record(user_id, image, history, result)
    logger.info(
        "Analysis finished",
        user_id=user_id,
        scan_id=scan_id,
        confidence=result.confidence,
        risk=result.risk,
    )
    return AnalysisOutcome(
        analysis=result.analysis,
        confidence=result.confidence,
        risk=result.risk,
        raw_analysis=result.raw,
        scan_id=scan_id,
    )


# ----------------------------
# Background analysis (POST /api/scans)
# ----------------------------
def process_scan(
    scan_id: str,
    image: DecodedImage,
    model: VisionModel,
    session_factory: Callable[[], Session],
) -> None:
    """
    Run the model for a PROCESSING scan and settle it as COMPLETED or FAILED.

    Runs after the response has been sent, so it opens its own session.
    """
    db = session_factory()
    try:
        try:
            text = model.analyze(compose_prompt(), image)
        except ScreeningError as e:
            error = e.details or e.message
            crud.finish_scan(db, scan_id, ScanStatus.FAILED, error=error)
            logger.warning("Scan failed", scan_id=scan_id, error=error)
            return
        except Exception as e:
            crud.finish_scan(db, scan_id, ScanStatus.FAILED, error=str(e))
            logger.exception("Scan failed unexpectedly", scan_id=scan_id)
            return

        result = parse_analysis(text)
        try:
            changed = crud.finish_scan(
                db,
                scan_id,
                ScanStatus.COMPLETED,
                analysis=result.analysis,
                diagnosis=result.analysis,
                raw_analysis=result.raw,
                confidence=result.confidence,
                risk=result.risk,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to store scan result", scan_id=scan_id)
            crud.finish_scan(db, scan_id, ScanStatus.FAILED, error=f"Failed to store analysis: {e}")
            return

        if changed:
            logger.info("Scan completed", scan_id=scan_id, risk=result.risk)
        else:
            logger.warning("Scan already settled, result discarded", scan_id=scan_id)
    finally:
        db.close()
