import sys
import os
import traceback
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import minishell as m


def test_smoke_handlers_do_not_raise(tmp_path, monkeypatch):
    """Call each builtin handler with an empty-args list and fail if
    any handler raises. Usage strings and ShellError reports are
    considered acceptable.
    """
    monkeypatch.chdir(tmp_path)
    failures = []
    for name, builtin in m.BUILTINS.items():
        try:
            # with no arguments every builtin either does its job or
            # returns a usage string
            builtin.handler([])
        except m.ShellError:
            pass
        except BaseException:
            failures.append((name, traceback.format_exc()))

    if failures:
        msgs = []
        for n, tb in failures:
            msgs.append(f"{n}:\n{tb}")
        pytest.fail(f"{len(failures)} handlers raised exceptions:\n\n" + "\n\n".join(msgs))
