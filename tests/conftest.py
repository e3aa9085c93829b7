import os
import tempfile

# database.py reads DATABASE_URL at import time
_tmp_dir = tempfile.mkdtemp(prefix="resort-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_tmp_dir, "test.db")
