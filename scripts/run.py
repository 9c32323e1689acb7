# scripts/run.py
import pathlib
import sys

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from tenantadmin.cli.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
