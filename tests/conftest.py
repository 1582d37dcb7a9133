from pathlib import Path
import sys
import pytest
import yaml

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from ladle.core.engine import AdditionSolver, SolverConfig
from ladle.core.models import Composition, ElementSpec


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]

@pytest.fixture(scope="session")
def data_dir(repo_root: Path) -> Path:
    d = repo_root / "data"
    if not d.exists():
        pytest.skip("data directory not found; skipping data-dependent tests.")
    return d

@pytest.fixture(scope="session")
def yload():
    def _load(p: Path):
        with p.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    return _load

@pytest.fixture
def stainless_specs():
    # 1000 kg melt, Cr 14.79 -> 17, Ni 2 -> 12, Fe balance
    return [
        ElementSpec("Chromium", 14.79, 17.00),
        ElementSpec("Nickel", 2.00, 12.00),
        ElementSpec("Iron", 83.21, 71.00),
    ]

@pytest.fixture
def make_solver():
    def _make(specs, total_weight=1000.0, **cfg):
        comp = Composition.from_specs(specs, total_weight)
        return AdditionSolver(comp, SolverConfig(**cfg))
    return _make
