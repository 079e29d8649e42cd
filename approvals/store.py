"""
APPROVAL PIPELINE - Case Store
==============================
JSON file storage for pipeline states, used by the CLI.

One file per case: {cases_dir}/{case_id}.json. The scheduler core never
touches this module; it is the caller-side serialisation layer.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import CaseNotFoundError
from .schema import PipelineState

logger = logging.getLogger("approvals.store")


class CaseStore:
    """File-backed PipelineState storage"""

    def __init__(self, cases_dir: Union[str, Path] = ".approvals/cases"):
        self.cases_dir = Path(cases_dir)
        self.cases_dir.mkdir(parents=True, exist_ok=True)

    def _get_case_file(self, case_id: str) -> Path:
        return self.cases_dir / f"{case_id}.json"

    def exists(self, case_id: str) -> bool:
        return self._get_case_file(case_id).exists()

    def save(self, state: PipelineState) -> Path:
        file_path = self._get_case_file(state.case_id)
        with open(file_path, 'w') as f:
            json.dump(state.model_dump(mode='json'), f, indent=2)

        logger.info(f"💾 Saved case: {state.case_id} ({state.overall_progress_pct:.0f}% complete)")
        return file_path

    def load(self, case_id: str) -> PipelineState:
        file_path = self._get_case_file(case_id)
        if not file_path.exists():
            raise CaseNotFoundError(case_id)

        with open(file_path, 'r') as f:
            data = json.load(f)

        state = PipelineState.model_validate(data)
        logger.debug(f"📂 Loaded case: {case_id}")
        return state

    def list_cases(self) -> List[Dict[str, Any]]:
        """Summaries of stored cases, most recently updated first"""
        cases = []

        for file_path in self.cases_dir.glob("*.json"):
            try:
                state = self.load(file_path.stem)
            except (OSError, ValueError) as e:
                logger.warning(f"Error reading {file_path}: {e}")
                continue

            cases.append({
                "case_id": state.case_id,
                "tasks": len(state.instances),
                "approved": state.completed_count,
                "progress": f"{state.overall_progress_pct:.0f}%",
                "total_duration_days": state.blueprint.total_duration_days,
                "updated_at": state.updated_at.isoformat() if state.updated_at else "",
            })

        return sorted(cases, key=lambda x: x["updated_at"], reverse=True)

    def delete(self, case_id: str) -> None:
        file_path = self._get_case_file(case_id)
        if not file_path.exists():
            raise CaseNotFoundError(case_id)
        file_path.unlink()
        logger.info(f"🗑️ Deleted case: {case_id}")
