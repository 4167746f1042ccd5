# src/tasksync/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import date

from ..core.errors import TaskSyncError, ValidationError, friendly_error_message
from ..core.state import AppState
from ..tasks.task_models import Role, Task, TaskDraft, TaskPriority, TaskStatus, UserProfile
from ..tasks.task_views import is_overdue

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args, emit)
        except TaskSyncError as e:
            logger.debug("/%s failed: %s", name, e.message)
            return friendly_error_message(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_task(task: Task, today: date) -> str:
    due = task.due_date.isoformat() if task.due_date else "N/A"
    overdue = " OVERDUE" if is_overdue(task, today) else ""
    assignee = task.assigned_to or "-"
    line = f"[{task.id}] {task.title} ({task.priority.value}, {task.status.value}) due {due}{overdue} -> {assignee}"
    if task.description:
        line += f"\n      {task.description}"
    return line


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate key=value options from positional words."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.isidentifier():
            opts[key.lower()] = value
        else:
            words.append(arg)
    return words, opts


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    identity = await state.board.login(args[0], args[1])
    counts = state.board.counts()
    return f"Welcome, {identity.display_name} ({identity.role.value}). {counts.total} task(s) in view."


async def cmd_register(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /register "<full name>" <email> <password> <confirm> [role=Employee|Manager|Admin] [phone=...]
    """
    words, opts = _split_options(args)
    if len(words) != 4:
        return 'Usage: /register "<full name>" <email> <password> <confirm> [role=...] [phone=...]'
    profile = UserProfile(
        full_name=words[0],
        email=words[1],
        password=words[2],
        confirm_password=words[3],
        role=Role.parse(opts.get("role")),
        phone=opts.get("phone") or None,
    )
    identity = await state.board.register(profile)
    return f"Registration successful for {identity.email}. Use /login to sign in."


async def cmd_logout(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.board.session.is_authenticated:
        return "You are not signed in."
    await state.board.sign_out()
    return "Signed out."


async def cmd_whoami(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.board.identity
    if identity is None:
        return "Not signed in. Use /login <email> <password>."
    live = "live" if state.board.channel.is_live else "not live (use /refresh)"
    return f"{identity.display_name} <{identity.email}> role={identity.role.value} id={identity.id}; updates: {live}"


async def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /tasks                 -> all tasks in view
    /tasks open            -> filter by status
    /tasks high            -> filter by priority
    /tasks in-progress low -> both
    """
    state.board.session.require_identity()

    status: str | None = None
    priority: str | None = None
    for arg in args:
        value = arg.lower()
        if value in {s.value for s in TaskStatus}:
            status = value
        elif value in {p.value for p in TaskPriority}:
            priority = value
        else:
            return f"Unknown filter {arg!r}. Statuses: {', '.join(TaskStatus)}; priorities: {', '.join(TaskPriority)}."

    tasks = state.board.filtered(status, priority)
    if not tasks:
        return "No tasks."
    today = date.today()
    return "\n".join(_format_task(t, today) for t in tasks)


async def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.board.session.require_identity()
    c = state.board.counts()
    return f"Total: {c.total}  Completed: {c.completed}  In Progress: {c.in_progress}  Overdue: {c.overdue}"


async def cmd_overdue(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.board.session.require_identity()
    tasks = state.board.overdue()
    if not tasks:
        return "Nothing is overdue."
    today = date.today()
    return "\n".join(_format_task(t, today) for t in tasks)


async def cmd_new(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /new <title words...> [priority=low|medium|high] [status=...] [due=YYYY-MM-DD]
         [assignee=<email>] [desc="..."]
    """
    words, opts = _split_options(args)
    if not words:
        return 'Usage: /new <title> [priority=...] [status=...] [due=YYYY-MM-DD] [assignee=<email>] [desc="..."]'

    due: date | None = None
    if opts.get("due"):
        try:
            due = date.fromisoformat(opts["due"])
        except ValueError:
            raise ValidationError(f"Invalid due date {opts['due']!r}; use YYYY-MM-DD.") from None

    assignee = None
    if opts.get("assignee"):
        assignee = await state.board.find_user(opts["assignee"])
        if assignee is None:
            return f"No user with email {opts['assignee']!r}."

    draft = TaskDraft(
        title=" ".join(words),
        description=opts.get("desc", ""),
        priority=opts.get("priority", TaskPriority.MEDIUM).lower(),
        status=opts.get("status", TaskStatus.OPEN).lower(),
        due_date=due,
        assigned_to=assignee,
    )
    result = await state.board.create_task(draft)
    msg = f"Task created! [{result.value.id}] {result.value.title}"
    return f"{msg}\n{result.warning}" if result.warning else msg


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return f"Usage: /status <task-id> <{'|'.join(TaskStatus)}>"
    result = await state.board.update_status(args[0], args[1].lower())
    msg = f"Status updated: [{result.value.id}] -> {result.value.status.value}"
    return f"{msg}\n{result.warning}" if result.warning else msg


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /delete <task-id>"
    result = await state.board.delete_task(args[0])
    return f"Task deleted\n{result.warning}" if result.warning else "Task deleted"


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    snapshot = await state.board.refresh()
    return f"Refreshed: {len(snapshot)} task(s) in view."


async def cmd_live(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    channel = state.board.channel
    if not channel.is_open:
        return "Live updates are off (not signed in)."
    s = channel.stats
    mode = "connected" if channel.is_live else "waiting for the push channel"
    return (
        f"Live updates: {mode}. Signals: {s.signals} (coalesced {s.coalesced}), "
        f"refreshes: {s.refreshes} ok / {s.failed_refreshes} failed, reconnects: {s.reconnects}."
    )


async def cmd_users(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    users = await state.board.list_users()
    if not users:
        return "No users."
    return "\n".join(f"{u.display_name} <{u.email}> {u.role.value} id={u.id}" for u in users)


async def cmd_adduser(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /adduser "<full name>" <email> <password> [role=Employee|Manager|Admin] [phone=...]
    """
    words, opts = _split_options(args)
    if len(words) != 3:
        return 'Usage: /adduser "<full name>" <email> <password> [role=...] [phone=...]'
    user = await state.board.create_user(
        UserProfile(
            full_name=words[0],
            email=words[1],
            password=words[2],
            role=Role.parse(opts.get("role")),
            phone=opts.get("phone") or None,
        )
    )
    return f"User created: {user.display_name} <{user.email}> {user.role.value}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("register", cmd_register, help_text='Create an account: /register "<name>" <email> <pw> <pw>.')
registry.register("logout", cmd_logout, help_text="Sign out and forget the stored session.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user and live-update state.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [status] [priority].", aliases=["ls"])
registry.register("stats", cmd_stats, help_text="Total / completed / in progress / overdue counters.")
registry.register("overdue", cmd_overdue, help_text="List overdue tasks.")
registry.register("new", cmd_new, help_text="Create a task: /new <title> [priority=..] [due=..] [assignee=..].")
registry.register("status", cmd_status, help_text="Change status: /status <id> <status>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("refresh", cmd_refresh, help_text="Reload tasks from the server.")
registry.register("live", cmd_live, help_text="Show live-update status and counters.")
registry.register("users", cmd_users, help_text="List users (managers and admins).")
registry.register("adduser", cmd_adduser, help_text='Create a user: /adduser "<name>" <email> <pw> role=...')
