"""Rule-based narration of audit records.

Turns an AuditRecord into one plain sentence for non-technical readers,
e.g. `Ana Souza created the folder "Contracts" on 2026-10-19 14:02:11 UTC.`

Rules are tried in a fixed order and the first one that matches renders the
sentence. Matching is on the HTTP method and the lowercased request path.
Records no rule matches (GET requests, typically) get no sentence; the
structured record is still written.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from scribe.audit.directory import UserDirectory
from scribe.audit.models.record import AuditRecord
from scribe.observability.logging import get_logger
from scribe.observability.metrics import AUDIT_NARRATION_FAILURES

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass(frozen=True)
class NarrationContext:
    """Everything a rule may look at, precomputed once per record."""

    record: AuditRecord
    actor: str
    when: str
    method: str
    path: str  # lowercased, without query string
    raw_path: str  # as sent; ids keep their case

    def field(self, *names: str) -> str | None:
        """First non-empty value among `names`, body first, then response."""
        return self.body_field(*names) or self.response_field(*names)

    def body_field(self, *names: str) -> str | None:
        return _first(self.record.body, names)

    def response_field(self, *names: str) -> str | None:
        return _first(self.record.response_body, names)


def _first(source: object, names: tuple[str, ...]) -> str | None:
    if not isinstance(source, Mapping):
        return None
    for name in names:
        value = source.get(name)
        if value not in (None, ""):
            return str(value)
    return None


@dataclass(frozen=True)
class NarrationRule:
    """One (method, path) pattern and the sentence it produces."""

    name: str
    matches: Callable[[NarrationContext], bool]
    render: Callable[[NarrationContext], str]


def _last_segment(ctx: NarrationContext) -> str:
    return ctx.raw_path.rstrip("/").split("/")[-1]


def _new_name(ctx: NarrationContext) -> str | None:
    return ctx.body_field("newName", "name") or ctx.response_field("name")


def _render_create_folder(ctx: NarrationContext) -> str:
    name = ctx.field("name", "title")
    if name:
        return f'{ctx.actor} created the folder "{name}" on {ctx.when}.'
    return f"{ctx.actor} created a new folder on {ctx.when}."


def _render_delete_folder(ctx: NarrationContext) -> str:
    return f"{ctx.actor} deleted the folder (id: {_last_segment(ctx)}) on {ctx.when}."


def _render_create_file(ctx: NarrationContext) -> str:
    name = ctx.body_field("filename", "name") or ctx.response_field("name", "filename")
    if name:
        return f'{ctx.actor} created or uploaded the file "{name}" on {ctx.when}.'
    return f"{ctx.actor} uploaded a file on {ctx.when}."


def _render_rename(ctx: NarrationContext) -> str:
    old_name = ctx.body_field("oldName", "from")
    new_name = _new_name(ctx)
    if old_name:
        return f'{ctx.actor} renamed "{old_name}" to "{new_name}" on {ctx.when}.'
    return f'{ctx.actor} renamed an item to "{new_name}" on {ctx.when}.'


def _render_move(ctx: NarrationContext) -> str:
    item = ctx.body_field("itemName", "name") or ctx.response_field("name")
    target = f'"{item}"' if item else "an item"
    return f"{ctx.actor} moved {target} on {ctx.when}."


def _render_approve(ctx: NarrationContext) -> str:
    return f"{ctx.actor} approved a submission on {ctx.when}."


def _generic(verb: str) -> Callable[[NarrationContext], str]:
    def render(ctx: NarrationContext) -> str:
        return f"{ctx.actor} {verb} ({ctx.method}) at {ctx.record.url} on {ctx.when}."

    return render


RULES: tuple[NarrationRule, ...] = (
    NarrationRule(
        "create_folder",
        lambda c: c.method == "POST" and c.path.startswith("/api/folders"),
        _render_create_folder,
    ),
    NarrationRule(
        "delete_folder",
        lambda c: c.method == "DELETE" and c.path.startswith("/api/folders"),
        _render_delete_folder,
    ),
    NarrationRule(
        "create_file",
        lambda c: c.method == "POST"
        and (
            c.path.startswith("/api/files")
            or "/create" in c.path
            or "/documents" in c.path
        ),
        _render_create_file,
    ),
    # Substring heuristic: any PUT path containing these fragments counts
    NarrationRule(
        "rename",
        lambda c: c.method == "PUT"
        and any(fragment in c.path for fragment in ("rename", "/name", "/title"))
        and _new_name(c) is not None,
        _render_rename,
    ),
    NarrationRule(
        "move",
        lambda c: c.method == "POST" and "/move" in c.path,
        _render_move,
    ),
    NarrationRule(
        "approve",
        lambda c: c.method in ("POST", "PUT") and "/approve" in c.path,
        _render_approve,
    ),
    NarrationRule("generic_post", lambda c: c.method == "POST", _generic("performed an action")),
    NarrationRule("generic_put", lambda c: c.method == "PUT", _generic("updated something")),
    NarrationRule("generic_delete", lambda c: c.method == "DELETE", _generic("removed something")),
)


def build_context(record: AuditRecord, directory: UserDirectory) -> NarrationContext:
    raw_path = urlsplit(record.url).path
    return NarrationContext(
        record=record,
        actor=directory.display_name(record.user_id),
        when=record.timestamp.strftime(TIMESTAMP_FORMAT),
        method=record.method.upper(),
        path=raw_path.lower(),
        raw_path=raw_path,
    )


def narrate(
    record: AuditRecord,
    directory: UserDirectory,
    rules: tuple[NarrationRule, ...] = RULES,
) -> str | None:
    """Describe `record` in one sentence, or return None.

    The first matching rule wins. A rule that raises yields no sentence
    for this record; the failure is logged and counted.
    """
    rule_name = None
    try:
        ctx = build_context(record, directory)
        for rule in rules:
            rule_name = rule.name
            if rule.matches(ctx):
                return rule.render(ctx)
    except Exception as e:
        logger.debug(
            "narration_failed",
            rule=rule_name,
            method=record.method,
            url=record.url,
            error=str(e),
        )
        AUDIT_NARRATION_FAILURES.inc()
    return None

