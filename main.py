"""
SLANG Programming Language - Main Entry Point
A small expression language with blocks, closures and loops
"""

import sys
import argparse
import logging
from typing import List, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import SlangSyntaxError, SlangRuntimeError
from parsing import create_parser
from interpreter import create_interpreter
from ast_nodes import format_statement
from stdlib import show_value, is_unit

VERSION = "SLANG v0.1.0"
HISTORY_FILE = "~/.slang_history"
LOG_ENV_VAR = "SLANG_LOG"

logger = logging.getLogger(__name__)


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='slang',
      description='SLANG Programming Language - tree-walking interpreter',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.slang            # Run a SLANG script
  %(prog)s -i                      # Interactive mode
  %(prog)s --tokens script.slang   # Show the token stream
  %(prog)s --parse script.slang    # Parse and show statements
  %(prog)s --debug script.slang    # Run with debug logging
  SLANG_LOG=info %(prog)s script.slang
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='SLANG script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the statements (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug logging and tracebacks'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def log_level(debug: bool = False) -> int:
  """--debug wins over the SLANG_LOG level name; unknown names mean WARNING"""
  if debug:
    return logging.DEBUG
  level = getattr(logging, os.environ.get(LOG_ENV_VAR, "WARNING").upper(), None)
  return level if isinstance(level, int) else logging.WARNING


def configure_logging(debug: bool = False) -> None:
  """Log to stderr at the level picked by log_level"""
  logging.basicConfig(
      level=log_level(debug),
      stream=sys.stderr,
      format="%(levelname)s %(name)s: %(message)s"
  )


def report_error(error: Exception) -> None:
  """Print a syntax or runtime error to stderr"""
  if isinstance(error, SlangSyntaxError):
    print(f"Syntax Error: {error}", file=sys.stderr)
  elif isinstance(error, SlangRuntimeError):
    print(f"Runtime Error: {error}", file=sys.stderr)
  else:
    print(f"Unexpected error: {error}", file=sys.stderr)


def read_script(script_path: str) -> Optional[str]:
  """Read a script, reporting I/O failures; None when it cannot be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    print("  Hint: Check the file path and make sure the file exists", file=sys.stderr)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'", file=sys.stderr)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    print("  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
  return None


def tokenize_file(script_path: str) -> int:
  """Tokenize a SLANG script file and show the tokens"""
  source = read_script(script_path)
  if source is None:
    return 1

  try:
    tokens = create_parser().tokenize(source, script_path)
  except SlangSyntaxError as e:
    report_error(e)
    return 1

  for token in tokens:
    print(f"{token.span.start_line}:{token.span.start_col}\t{token.type}\t{token}")
  return 0


def parse_file(script_path: str) -> int:
  """Parse a SLANG script file and show its statements in canonical form"""
  source = read_script(script_path)
  if source is None:
    return 1

  try:
    statements = create_parser().parse_string(source, script_path)
  except SlangSyntaxError as e:
    report_error(e)
    return 1

  print(f"Parsed {len(statements)} top-level statements:")
  print("=" * 50)
  for statement in statements:
    print(format_statement(statement))
  return 0


def run_script_file(script_path: str, debug: bool = False) -> int:
  """Run a SLANG script file, returning the process exit status"""
  source = read_script(script_path)
  if source is None:
    return 1

  try:
    statements = create_parser().parse_string(source, script_path)
    logger.info("parsed %d statements from %s", len(statements), script_path)
    result = create_interpreter().run(statements)
    logger.info("program result: %s", show_value(result, nested=True))
  except (SlangSyntaxError, SlangRuntimeError) as e:
    report_error(e)
    return 1
  except Exception as e:
    report_error(e)
    if debug:
      import traceback
      traceback.print_exc()
    return 1

  return 0


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet

  readline.set_history_length(1000)

  completions = [
      # Keywords
      "let", "return", "break", "continue", "if", "else", "while", "for", "in",
      "and", "or", "not", "true", "false",
      # Built-in functions
      "print",
      # REPL commands
      ":parse", ":env", ":help", "exit"
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def is_incomplete(error: SlangSyntaxError) -> bool:
  """An unclosed group means the input continues on the next line"""
  return error.message.startswith("No matching closing")


def print_help() -> None:
  print("REPL Commands:")
  print("  :parse <code>     - Show parsed statements")
  print("  :env              - Show current bindings")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  let x = 5;                     - Variable definition")
  print("  x += 1;                        - Assignment")
  print("  let f = |a, b| { a + b };      - Closure")
  print("  f(1, 2)                        - Call, value shown without ';'")
  print("  for x in [1, 2] { print(x); }; - Loops: for, while, break, continue")


def run_interactive_mode(debug: bool = False) -> None:
  """Run SLANG in interactive mode, sharing one context across inputs"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  print()

  setup_readline()

  parser = create_parser()
  interpreter = create_interpreter()
  buffer = ""

  while True:
    try:
      line = input("...> " if buffer else "slang> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if not buffer:
      command = line.strip()
      if command == "exit":
        break
      if not command:
        continue
      if command == ":help":
        print_help()
        continue
      if command == ":env":
        bindings = interpreter.bindings()
        if not bindings:
          print("  (no bindings)")
        for name, value in bindings.items():
          print(f"  {name} = {show_value(value, nested=True)}")
        continue
      if command.startswith(":parse "):
        try:
          for statement in parser.parse_string(command[len(":parse "):], "<repl>"):
            print(format_statement(statement))
        except SlangSyntaxError as e:
          report_error(e)
        continue

    code = buffer + line + "\n"
    try:
      statements = parser.parse_string(code, "<repl>")
    except SlangSyntaxError as e:
      if is_incomplete(e):
        buffer = code
      else:
        buffer = ""
        report_error(e)
      continue
    buffer = ""

    try:
      result = interpreter.run(statements)
      if not is_unit(result):
        print(f"=> {show_value(result, nested=True)}")
    except SlangRuntimeError as e:
      report_error(e)
    except Exception as e:
      report_error(e)
      if debug:
        import traceback
        traceback.print_exc()


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for SLANG"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)
  configure_logging(args.debug)

  if args.script:
    if args.tokens:
      return tokenize_file(args.script)
    if args.parse:
      return parse_file(args.script)
    return run_script_file(args.script, debug=args.debug)

  if args.interactive:
    run_interactive_mode(debug=args.debug)
    return 0

  arg_parser.print_help()
  return 0


if __name__ == "__main__":
  sys.exit(main())
