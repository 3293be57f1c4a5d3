import os
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent

if Path.cwd() != PROJECT_ROOT:
    os.chdir(PROJECT_ROOT)

os.environ.setdefault('SCYLLA_RESOURCE_PATH', str(PROJECT_ROOT / 'tests' / 'resources'))
os.environ.setdefault('SCYLLA_STARTUP_TIMEOUT', '120')
