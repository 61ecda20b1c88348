import time
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class SaveState:
    uploads_dir: Path
    min_commit_interval: float = 120.0  # seconds
    is_processing: bool = False
    last_commit_time: float = field(default_factory=time.time)
