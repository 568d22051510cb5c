"""Client-side tube state.

The server does not echo the current tube or the watch list back on every
command, so the client keeps its own copy to skip redundant round trips and
to answer local queries.
"""

from __future__ import annotations

from typing import Final

DEFAULT_TUBE: Final[str] = "default"


class TubeState:
    """The tube a client puts into and the tubes it reserves from.

    ``watching`` keeps insertion order and is never empty.
    """

    _using: str
    _watching: dict[str, None]

    def __init__(self, using: str = DEFAULT_TUBE, watching: list[str] | None = None) -> None:
        self._using = using
        self._watching = dict.fromkeys(watching or [DEFAULT_TUBE])

    @property
    def using(self) -> str:
        """Tube that new jobs are put into."""
        return self._using

    @property
    def watching(self) -> list[str]:
        """Tubes reserved from, in the order they were watched."""
        return list(self._watching)

    def is_using(self, tube: str) -> bool:
        """Check if a tube is the one in use."""
        return tube == self._using

    def is_watching(self, tube: str) -> bool:
        """Check if a tube is being watched."""
        return tube in self._watching

    def can_ignore(self, tube: str) -> bool:
        """Check whether ignoring a tube leaves at least one watched tube."""
        return tube in self._watching and len(self._watching) > 1

    def use(self, tube: str) -> None:
        """Set the tube new jobs are put into."""
        self._using = tube

    def watch(self, tube: str) -> None:
        """Start watching a tube, keeping its position if already watched."""
        self._watching[tube] = None

    def ignore(self, tube: str) -> None:
        """Stop watching a tube.

        Raises:
            ValueError: If the tube is not watched or is the last one being watched
        """
        if tube not in self._watching:
            msg = f"Cannot ignore {tube!r}: not being watched"
            raise ValueError(msg)
        if not self.can_ignore(tube):
            msg = f"Cannot ignore {tube!r}: watch list would be empty"
            raise ValueError(msg)
        del self._watching[tube]

    def replace_watching(self, tubes: list[str]) -> None:
        """Replace the watch list with the server's authoritative list.

        Raises:
            ValueError: If tubes is empty
        """
        if not tubes:
            msg = "Watch list cannot be empty"
            raise ValueError(msg)
        self._watching = dict.fromkeys(tubes)

    @property
    def watch_count(self) -> int:
        """Number of tubes being watched."""
        return len(self._watching)

    def __repr__(self) -> str:
        return f"TubeState(using={self._using!r}, watching={self.watching!r})"
