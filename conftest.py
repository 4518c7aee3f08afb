import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# settings.py reads these at import; never point the suite at a real database
_TMP = tempfile.mkdtemp(prefix="killfeed-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_TMP) / 'test.db'}"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ.setdefault("CURRENT_WIPE_ID", "wipe_1")
