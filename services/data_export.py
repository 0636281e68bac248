# services/data_export.py

import json
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from core.models import Challenge, ExportSnapshot

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = [
    "id", "title", "category", "type", "difficulty", "estimatedTime",
    "createdAt", "completed", "completedAt"
]

def export_to_json(snapshot: ExportSnapshot, export_dir: Path) -> Path:
    export_dir.mkdir(parents=True, exist_ok=True)
    stamp = snapshot.export_date.strftime("%Y%m%d_%H%M%S")
    filename = export_dir / f"challenges_export_{stamp}.json"
    with open(filename, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, ensure_ascii=False, indent=2)
    logger.info(f"JSON export written to {filename}")
    return filename

def export_history_to_csv(history: List[Challenge], export_dir: Path) -> Optional[Path]:
    if not history:
        logger.warning("Challenge history is empty, nothing to export")
        return None
    export_dir.mkdir(parents=True, exist_ok=True)
    filename = export_dir / "challenge_history.csv"
    df = pd.DataFrame([c.to_dict() for c in history], columns=HISTORY_COLUMNS)
    df.to_csv(filename, index=False, encoding="utf-8")
    logger.info(f"CSV export written to {filename} ({len(df)} rows)")
    return filename
