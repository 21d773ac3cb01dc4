#!/usr/bin/env python3
"""
minishell - a small interactive POSIX-flavoured shell

The shell reads one line at a time, splits it into arguments following the
usual single-quote, double-quote and backslash rules, and then either runs one
of its builtins (exit, echo, pwd, cd, type, whoami, date, ls, clear) or spawns
the named program from the search path. Output of the child is not captured;
it writes straight to the terminal and the shell waits for it to finish.

Settings may be supplied in an optional YAML file (``~/.minishell.yaml``):

    prompt: "$ "
    color: true

Tab completion of command names and paths is available when the readline
module is present.
"""

import os
import sys
import stat
import time
import pwd
import subprocess
from cmd import Cmd
from collections import OrderedDict
from enum import Enum
from typing import List, Optional, Dict, Callable, Any, NamedTuple

# optional module
try:
    import readline  # noqa: F401
except Exception:
    readline = None

import yaml
from colorama import Fore, Style, just_fix_windows_console

# prompt marker and configuration defaults
PROMPT = "$ "
CONFIG_PATH = "~/.minishell.yaml"
DEFAULT_CONFIG: Dict[str, Any] = {"prompt": PROMPT, "color": True}

# Characters that keep their special meaning after a backslash inside double
# quotes. Any other escaped character keeps the backslash as well.
DOUBLE_QUOTE_SPECIALS = frozenset('\\$"\n')

# Sequence written by ``clear``: erase the display, then home the cursor.
CLEAR_SCREEN = "\033[2J\033[H"


class ShellError(Exception):
    """A failure reported as a single line on standard error."""


class ConfigError(ShellError):
    """The configuration file could not be used."""


# ---------- Utilities ----------
def c(text: Any, color: Fore = Fore.RED) -> str:
    """Colourise text for terminal display."""
    lines = str(text).splitlines() or [""]
    return "\n".join(f"{color}{ln}{Style.RESET_ALL}" for ln in lines)


def report(message: Any, color: bool = True) -> None:
    """Write a single diagnostic line to standard error.

    The line is only coloured when stderr is a terminal, so piped or captured
    output stays plain.
    """
    stream = sys.stderr
    if color and stream.isatty():
        message = c(message, Fore.RED)
    print(message, file=stream)


def now() -> str:
    """Return the current local time in RFC 1123 layout."""
    return time.strftime("%a, %d %b %Y %H:%M:%S %Z")


# ---------- Tokenizer ----------
class QuoteState(Enum):
    NORMAL = "normal"
    SINGLE = "single"
    DOUBLE = "double"


def tokenize(line: str) -> List[str]:
    """Split a command line into arguments.

    Single quotes preserve everything literally, backslashes included. Inside
    double quotes a backslash only escapes ``\\``, ``$``, ``"`` and newline;
    before any other character it is kept. Outside quotes a backslash makes
    the next character literal, so ``a\\ b`` is a single argument. Only the
    space character separates arguments. Unterminated quotes run to the end
    of the line and a trailing backslash is kept as a literal character.
    """
    args: List[str] = []
    buf: List[str] = []
    state = QuoteState.NORMAL
    escaped = False

    for ch in line:
        if escaped:
            if state is QuoteState.DOUBLE and ch not in DOUBLE_QUOTE_SPECIALS:
                buf.append("\\")
            buf.append(ch)
            escaped = False
        elif ch == "\\":
            if state is QuoteState.SINGLE:
                buf.append(ch)
            else:
                escaped = True
        elif ch == "'" and state is not QuoteState.DOUBLE:
            state = QuoteState.NORMAL if state is QuoteState.SINGLE else QuoteState.SINGLE
        elif ch == '"' and state is not QuoteState.SINGLE:
            state = QuoteState.NORMAL if state is QuoteState.DOUBLE else QuoteState.DOUBLE
        elif ch == " " and state is QuoteState.NORMAL:
            if buf:
                args.append("".join(buf))
                buf = []
        else:
            buf.append(ch)

    if escaped:
        buf.append("\\")
    if buf:
        args.append("".join(buf))
    return args


# ---------- External commands ----------
def find_in_path(name: str, path: Optional[str] = None) -> Optional[str]:
    """Return the first non-directory entry called ``name`` on the search path."""
    if path is None:
        path = os.environ.get("PATH", "")
    for directory in path.split(":"):
        # the name always nests inside the directory, even when absolute
        full_path = os.path.join(directory, name.lstrip("/")) if directory else name
        try:
            st = os.stat(full_path)
        except (OSError, ValueError):
            continue
        if not stat.S_ISDIR(st.st_mode):
            return full_path
    return None


def run_external(args: List[str]) -> Optional[int]:
    """Run a program with the shell's own streams and wait for it.

    Returns the exit status, or None when the program could not be started.
    """
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        proc = subprocess.run(args)
    except (OSError, ValueError):
        # ValueError: arguments holding a NUL byte cannot be passed to exec
        print(f"{args[0]}: command not found")
        return None
    return proc.returncode


# ---------- Builtin handlers ----------
def h_exit(args: List[str]):
    """Terminate the shell. Only ``exit 0`` is accepted."""
    if len(args) == 1 and args[0] == "0":
        raise SystemExit(0)
    return "Usage: exit 0"


def h_echo(args: List[str]):
    return " ".join(args)


def h_pwd(args: List[str]):
    try:
        return os.getcwd()
    except OSError as e:
        raise ShellError(f"Error retrieving current directory: {e}")


def h_cd(args: List[str]):
    """Change the working directory of the shell process.

    A lone ``~`` is replaced by ``$HOME``. A target that cannot be entered
    leaves the working directory as it was. Usage: cd <directory>
    """
    if len(args) != 1:
        return "Usage: cd <directory>"
    target = args[0]
    if target == "~":
        target = os.environ.get("HOME", "")
        if not target:
            raise ShellError("Error: HOME environment variable not set")
    try:
        os.chdir(target)
    except (OSError, ValueError):
        return f"cd: {target}: No such file or directory"
    return None


def h_type(args: List[str]):
    """Describe how a command name would be interpreted.

    Builtins are reported first, whatever PATH contains; otherwise the first
    match on the search path wins. Usage: type <command>
    """
    if len(args) != 1:
        return "Usage: type <command>"
    name = args[0]
    if is_builtin(name):
        return BUILTINS[name].description
    full_path = find_in_path(name)
    if full_path is None:
        return f"{name}: not found"
    return f"{name} is {full_path}"


def h_whoami(args: List[str]):
    try:
        return pwd.getpwuid(os.getuid()).pw_name
    except KeyError as e:
        raise ShellError(f"Error retrieving current user: {e}")


def h_date(args: List[str]):
    return now()


def h_ls(args: List[str]):
    """List entry names of a directory, one per line. Usage: ls [directory]"""
    directory = args[0] if args else "."
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        raise ShellError(f"Error reading directory: {e}")
    if not names:
        return None
    return "\n".join(names)


def h_clear(args: List[str]):
    sys.stdout.write(CLEAR_SCREEN)
    sys.stdout.flush()
    return None


class Builtin(NamedTuple):
    name: str
    description: str
    handler: Callable[[List[str]], Optional[str]]


def _builtin(name: str, handler: Callable[[List[str]], Optional[str]]) -> Builtin:
    return Builtin(name, f"{name} is a shell builtin", handler)


# Insertion order is dispatch precedence.
BUILTINS: "OrderedDict[str, Builtin]" = OrderedDict(
    (b.name, b) for b in (
        _builtin("exit", h_exit),
        _builtin("echo", h_echo),
        _builtin("pwd", h_pwd),
        _builtin("cd", h_cd),
        _builtin("type", h_type),
        _builtin("whoami", h_whoami),
        _builtin("date", h_date),
        _builtin("ls", h_ls),
        _builtin("clear", h_clear),
    )
)


def is_builtin(name: str) -> bool:
    return name in BUILTINS


# ---------- Configuration ----------
def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load shell settings from an optional YAML file.

    Missing files yield the defaults. Keys other than ``prompt`` and ``color``
    are ignored.
    """
    config = dict(DEFAULT_CONFIG)
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"config {path}: {e}")
    if data is None:
        return config
    if not isinstance(data, dict):
        raise ConfigError(f"config {path}: expected a mapping at top level")
    if "prompt" in data:
        if not isinstance(data["prompt"], str):
            raise ConfigError(f"config {path}: 'prompt' must be a string")
        config["prompt"] = data["prompt"]
    if "color" in data:
        if not isinstance(data["color"], bool):
            raise ConfigError(f"config {path}: 'color' must be true or false")
        config["color"] = data["color"]
    return config


def _configure_readline() -> None:
    """Bind TAB to completion and keep readline from recording history."""
    if not readline:
        return
    try:
        # libedit (notably macOS) uses a different binding syntax
        doc = getattr(readline, '__doc__', '') or ''
        if 'libedit' in doc:
            readline.parse_and_bind('bind ^I rl_complete')
        else:
            readline.parse_and_bind('tab: complete')
        readline.parse_and_bind('set show-all-if-ambiguous on')
        readline.set_completer_delims(' \t\n')
        readline.set_auto_history(False)
    except Exception:
        # bindings are a convenience; an unsupported one is skipped
        pass


# ---------- Shell ----------
class MiniShell(Cmd):
    prompt = PROMPT

    def __init__(self, config: Optional[Dict[str, Any]] = None, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        config = config or DEFAULT_CONFIG
        self.prompt = config.get("prompt", PROMPT)
        self.color = config.get("color", True)
        if stdin is not None:
            self.use_rawinput = False

    # ---- helpers
    def _report(self, message: str) -> None:
        report(message, self.color)

    def _readline(self) -> str:
        if self.use_rawinput:
            return input(self.prompt)
        self.stdout.write(self.prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            raise EOFError
        return line.rstrip("\r\n")

    def _execute(self, builtin: Builtin, args: List[str]) -> None:
        """Run a builtin handler and print what it returns."""
        try:
            out = builtin.handler(args)
        except ShellError as e:
            self._report(str(e))
            return
        except Exception as e:
            self._report(f"{builtin.name}: {e}")
            return
        if out is None:
            return
        self.stdout.write(out + "\n")

    # ---- core overrides
    def cmdloop(self, intro=None):
        """Prompt, read and dispatch lines until end of input."""
        self.preloop()
        old_completer = None
        if self.use_rawinput and self.completekey and readline:
            old_completer = readline.get_completer()
            readline.set_completer(self.complete)
            _configure_readline()
        try:
            stop = None
            while not stop:
                try:
                    line = self._readline()
                except EOFError:
                    self.stdout.write("\n")
                    break
                except (OSError, UnicodeDecodeError) as e:
                    self._report(f"Error reading input: {e}")
                    continue
                line = self.precmd(line)
                stop = self.onecmd(line)
                stop = self.postcmd(stop, line)
            self.postloop()
        finally:
            if self.use_rawinput and self.completekey and readline:
                readline.set_completer(old_completer)

    def onecmd(self, line: str):
        """Tokenize one line and dispatch it to a builtin or a program."""
        line = line.strip()
        if not line:
            return self.emptyline()
        args = tokenize(line)
        if not args:
            return False
        builtin = BUILTINS.get(args[0])
        if builtin is not None:
            self._execute(builtin, args[1:])
        else:
            run_external(args)
        return False

    def emptyline(self):
        # blank input does nothing; never repeat the previous command
        return False

    # ---- tab completion
    def completenames(self, text, *ignored):
        names = [k for k in BUILTINS if k.startswith(text)]
        for directory in os.environ.get("PATH", "").split(":"):
            try:
                entries = os.listdir(directory or ".")
            except OSError:
                continue
            for entry in entries:
                if entry.startswith(text) and find_in_path(entry, directory) is not None:
                    names.append(entry)
        return sorted(set(names))

    def completedefault(self, text: str, line: str, begidx: int, endidx: int):
        return self._complete_path(text)

    def _complete_path(self, text: str) -> List[str]:
        """Return filesystem completions for a partial path.

        Relative paths are resolved against the working directory and
        directories are suffixed with '/' so completion can continue.
        """
        head, pattern = os.path.split(text)
        base_dir = os.path.expanduser(head) if head else "."
        prefix_str = text[:len(text) - len(pattern)]
        suggestions: List[str] = []
        try:
            entries = sorted(os.listdir(base_dir))
        except OSError:
            return suggestions
        for entry in entries:
            if not entry.startswith(pattern):
                continue
            if entry.startswith(".") and not pattern.startswith("."):
                continue
            if os.path.isdir(os.path.join(base_dir, entry)):
                suggestions.append(prefix_str + entry + "/")
            else:
                suggestions.append(prefix_str + entry)
        return suggestions


# ---------- main ----------
def main():
    just_fix_windows_console()
    try:
        config = load_config()
    except ConfigError as e:
        report(e)
        config = dict(DEFAULT_CONFIG)
    MiniShell(config).cmdloop()


if __name__ == "__main__":
    main()
