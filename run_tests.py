"""Run the test suite with unittest discovery.

    python run_tests.py              # everything under tests/
    python run_tests.py test_store   # only tests/test_store.py
"""

import unittest
import sys
import os

# Add root directory to path so tests can find modules
ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT)


def run_tests(module=None):
    loader = unittest.TestLoader()
    pattern = f"{module}.py" if module else "test_*.py"
    suite = loader.discover(os.path.join(ROOT, "tests"), pattern=pattern)

    result = unittest.TextTestRunner(verbosity=2).run(suite)
    if not result.wasSuccessful():
        sys.exit(1)


if __name__ == '__main__':
    run_tests(sys.argv[1] if len(sys.argv) > 1 else None)
