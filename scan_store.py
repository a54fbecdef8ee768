# scan_store.py
from typing import Optional, Protocol

from sqlalchemy.orm import Session

import crud
from imaging import DecodedImage
from logging_config import get_logger
from models import ScanStatus
from response_parser import ParsedAnalysis
from schemas import HistopathologicalData

logger = get_logger(__name__)


class ScanStore(Protocol):
    def record(
        self,
        user_id: str,
        image: DecodedImage,
        history: Optional[HistopathologicalData],
        result: ParsedAnalysis,
    ) -> Optional[str]:
        """Persist a finished analysis and return the scan id, if one was stored."""
        ...


def build_patient_data(history: Optional[HistopathologicalData], result: ParsedAnalysis) -> dict:
    data = {
        "confidence": result.confidence,
        "risk": result.risk,
        "rawAnalysis": result.raw,
    }
    if history is not None:
        data.update(history.model_dump(by_alias=True, exclude_none=True))
    return data


class DatabaseScanStore:
    def __init__(self, db: Session):
        self.db = db

    def record(self, user_id, image, history, result):
        scan = crud.create_scan(
            self.db,
            user_id=user_id,
            image_url=image.data,
            patient_data=build_patient_data(history, result),
            diagnosis=result.analysis,
            analysis=result.analysis,
            raw_analysis=result.raw,
            confidence=result.confidence,
            risk=result.risk,
            status=ScanStatus.COMPLETED,
        )
        logger.info("Scan stored", scan_id=scan.id, user_id=user_id)
        return scan.id


class NullScanStore:
    """Keeps nothing; used when analyses should not be written to the database."""

    def record(self, user_id, image, history, result):
        return None
