"""
Hook Engine

Resolves a shortcut's hook ids into ordered pre/post actions and runs them
around a launch.
"""

from __future__ import annotations
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import HookError, UnknownHookError

if TYPE_CHECKING:
    from .shortcut import Shortcut

logger = logging.getLogger(__name__)


class HookAction:
    """A single side-effecting step run with the shortcut being launched.

    Subclasses provide a ``name`` and implement run(), raising on failure.
    """

    def run(self, shortcut: "Shortcut"):
        raise NotImplementedError


@dataclass(frozen=True)
class CallableAction(HookAction):
    """Hook action backed by a Python callable."""

    name: str
    func: Callable[["Shortcut"], None] = field(compare=False)

    def run(self, shortcut: "Shortcut"):
        self.func(shortcut)


@dataclass(frozen=True)
class ShellAction(HookAction):
    """Runs a shell command and waits for it.

    BASH_SHORTCUT_ID and BASH_SHORTCUT_NAME are exported to the command.
    A non-zero exit raises HookError.
    """

    cmd: str
    name: str = ""

    def __post_init__(self):
        if not self.name:
            object.__setattr__(self, "name", self.cmd)

    def run(self, shortcut: "Shortcut"):
        env = os.environ.copy()
        env["BASH_SHORTCUT_ID"] = shortcut.id
        env["BASH_SHORTCUT_NAME"] = shortcut.name
        try:
            subprocess.run(
                self.cmd,
                shell=True,
                check=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode(errors="replace").strip()
            raise HookError(
                f"Hook command {self.cmd!r} exited with {e.returncode}: {stderr}"
            ) from e
        except OSError as e:
            raise HookError(f"Hook command {self.cmd!r} could not run: {e}") from e


@dataclass(frozen=True)
class Hook:
    """A named category of actions run before and/or after a shortcut."""

    id: str
    pre: Tuple[HookAction, ...] = ()
    post: Tuple[HookAction, ...] = ()


@dataclass(frozen=True)
class ResolvedHooks:
    """Ordered actions for one launch."""

    pre: Tuple[HookAction, ...] = ()
    post: Tuple[HookAction, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.pre or self.post)


BUILTIN_HOOKS: Dict[str, Hook] = {
    # Flush filesystem buffers once a script is done writing
    "sync": Hook(id="sync", post=(ShellAction("sync"),)),
}


class HookEngine:
    """Runs configured hooks around shortcut execution.

    Pre-actions run in the order the hooks are configured on the shortcut and
    stop at the first failure. Post-actions run in the same hook order and
    are best-effort.
    """

    def __init__(self, hooks: Optional[Mapping[str, Hook]] = None):
        """Initialize hook engine.

        Args:
            hooks: Hook table; defaults to BUILTIN_HOOKS
        """
        self.hooks: Dict[str, Hook] = dict(BUILTIN_HOOKS if hooks is None else hooks)

    def resolve(self, hook_ids: Iterable[str]) -> ResolvedHooks:
        """Map hook ids to ordered actions.

        Raises:
            UnknownHookError: If a hook id is not configured
        """
        pre: List[HookAction] = []
        post: List[HookAction] = []
        for hook_id in hook_ids:
            hook = self.hooks.get(hook_id)
            if hook is None:
                raise UnknownHookError(hook_id)
            pre.extend(hook.pre)
            post.extend(hook.post)
        return ResolvedHooks(pre=tuple(pre), post=tuple(post))

    def run_pre(self, actions: ResolvedHooks, shortcut: "Shortcut"):
        """Run pre-actions sequentially.

        Raises:
            HookError: From the first failing action; later actions are skipped
        """
        for action in actions.pre:
            logger.debug("Pre-hook %s for %s", action.name, shortcut.id)
            try:
                action.run(shortcut)
            except HookError:
                raise
            except Exception as e:
                raise HookError(f"Pre-hook {action.name!r} failed: {e}") from e

    def run_post(self, actions: ResolvedHooks, shortcut: "Shortcut") -> List[HookError]:
        """Run every post-action, logging failures.

        Returns:
            The errors raised by failing actions (empty on success)
        """
        errors: List[HookError] = []
        for action in actions.post:
            logger.debug("Post-hook %s for %s", action.name, shortcut.id)
            try:
                action.run(shortcut)
            except Exception as e:
                logger.warning(
                    "Post-hook %r failed for shortcut %s: %s", action.name, shortcut.id, e
                )
                errors.append(e if isinstance(e, HookError) else HookError(str(e)))
        return errors
