"""Put src/ on sys.path so the serginho test suite runs from a plain checkout."""
import sys
from pathlib import Path

_src = str(Path(__file__).parent / "src")
if _src not in sys.path:
    sys.path.insert(0, _src)
