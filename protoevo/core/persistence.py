"""
Persistence layer for evolution run reports.

Provides JSON file-based storage for the outcome of two-fold runs. Only
reports (configuration, fold counts, best prototypes, generation history) are
stored, never live populations.
"""

import os
import json
import hashlib
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any
from filelock import FileLock


class RunStore:
    """
    File-based storage for run reports.

    Storage structure:
        <base_path>/
        ├── index.json                      # Quick lookup index
        └── runs/
            └── run_<timestamp>_<hash>.json # Full report
    """

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        self.runs_dir = self.base_path / 'runs'
        self.index_file = self.base_path / 'index.json'

        # Ensure directories exist
        self.runs_dir.mkdir(parents=True, exist_ok=True)

        if not self.index_file.exists():
            with self._get_lock(self.index_file):
                if not self.index_file.exists():
                    self._write_index({'version': '1.0', 'runs': {}})

    def _get_lock(self, file_path: Path) -> FileLock:
        """Get a file lock for atomic operations."""
        return FileLock(str(file_path) + '.lock')

    def _read_index(self) -> Dict:
        """Read the index file (caller should hold lock for read-modify-write)."""
        if self.index_file.exists():
            return json.loads(self.index_file.read_text())
        return {'version': '1.0', 'runs': {}}

    def _write_index(self, index: Dict):
        """Write the index file (caller should hold lock for read-modify-write)."""
        self.index_file.write_text(json.dumps(index, indent=2))

    def generate_run_id(self) -> str:
        """Generate a unique run ID."""
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        random_hash = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
        return f'run_{timestamp}_{random_hash}'

    def _get_report_path(self, run_id: str) -> Path:
        return self.runs_dir / f'{run_id}.json'

    def save_report(self, report: Dict[str, Any], run_id: Optional[str] = None) -> str:
        """
        Save a run report and register it in the index.

        Args:
            report: JSON-serializable report (e.g. RetryResult.to_dict())
            run_id: Optional run identifier (auto-generated if not provided)

        Returns:
            The run ID
        """
        run_id = run_id or self.generate_run_id()
        created_at = datetime.now().isoformat()

        self._get_report_path(run_id).write_text(
            json.dumps({'run_id': run_id, 'created_at': created_at, **report}, indent=2)
        )

        attempts = report.get('attempts', [])
        with self._get_lock(self.index_file):
            index = self._read_index()
            index['runs'][run_id] = {
                'created_at': created_at,
                'threshold_met': report.get('threshold_met'),
                'attempts': len(attempts),
                'best_percentage': max((a['percentage'] for a in attempts), default=None),
            }
            self._write_index(index)

        return run_id

    def load_report(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Load a full report, or None if it does not exist."""
        path = self._get_report_path(run_id)
        if not path.exists():
            return None
        return json.loads(path.read_text())

    def list_reports(self, limit: int = 100) -> List[Dict[str, Any]]:
        """
        List index entries, newest first.

        Returns index entries (not full reports) for efficiency.
        """
        index = self._read_index()
        runs = [{'run_id': run_id, **info} for run_id, info in index['runs'].items()]
        runs.sort(key=lambda r: r.get('created_at', ''), reverse=True)
        return runs[:limit]

    def delete_report(self, run_id: str) -> bool:
        """Delete a report and its index entry."""
        path = self._get_report_path(run_id)
        if not path.exists():
            return False
        path.unlink()

        with self._get_lock(self.index_file):
            index = self._read_index()
            index['runs'].pop(run_id, None)
            self._write_index(index)

        return True
