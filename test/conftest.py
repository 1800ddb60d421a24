"""
Test configuration for SLANG interpreter tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def interpreter():
  """Provide an interpreter with an empty global scope"""
  return create_interpreter()


@pytest.fixture
def run(parser, interpreter):
  """Parse and execute source, returning the program's runtime value"""
  def run_source(code: str):
    return interpreter.run(parser.parse_string(code))
  return run_source
