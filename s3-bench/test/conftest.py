import os
import sys

# GitPython refuses to import without a git executable unless told to stay quiet
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
