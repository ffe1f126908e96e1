from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .configmanager import ConfigManager
from .models import Listener

logger = ConfigManager.get_logger(__name__)


@dataclass(frozen=True)
class ListenerDiff:
    to_remove: list[Listener] = field(default_factory=list)
    to_add: list[Listener] = field(default_factory=list)
    # Desired listeners matching a current one by fingerprint but differing in other fields.
    drifted: list[Listener] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.to_remove and not self.to_add

    def to_json(self) -> dict[str, list[dict[str, object]]]:
        return {
            "remove": [x.to_json() for x in self.to_remove],
            "add": [x.to_json() for x in self.to_add],
            "drifted": [x.to_json() for x in self.drifted],
        }


def index_by_fingerprint(listeners: Iterable[Listener]) -> dict[int, Listener]:
    out: dict[int, Listener] = {}
    for listener in listeners:
        # If duplicates exist, keep the first.
        out.setdefault(listener.fingerprint, listener)
    return out


def diff_listeners(
    desired: Sequence[Listener],
    current: Sequence[Listener],
    *,
    recreate_changed: bool = False,
) -> ListenerDiff:
    """Set-difference desired and current listeners by fingerprint.

    Returns listeners to remove (current only), to add (desired only) and the
    desired listeners whose non-identity fields drifted from the remote copy.
    With recreate_changed, drifted listeners are also removed and re-added.
    """
    desired_by_fp = index_by_fingerprint(desired)
    current_by_fp = index_by_fingerprint(current)

    to_remove = [x for fp, x in current_by_fp.items() if fp not in desired_by_fp]
    to_add = [x for fp, x in desired_by_fp.items() if fp not in current_by_fp]

    drifted: list[Listener] = []
    for fp, want in desired_by_fp.items():
        have = current_by_fp.get(fp)
        if have is None:
            continue
        changed = want.restricted().differing_fields(have.restricted())
        if not changed:
            continue
        drifted.append(want)
        if recreate_changed:
            logger.info("Listener %s changed (%s); recreating", want.natural_index, ", ".join(changed))
            to_remove.append(have)
            to_add.append(want)
        else:
            logger.warning(
                "Listener %s differs from remote in %s; identity unchanged so it is left as is",
                want.natural_index,
                ", ".join(changed),
            )

    return ListenerDiff(to_remove=to_remove, to_add=to_add, drifted=drifted)
