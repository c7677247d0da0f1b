"""Leave-page checks across open editors."""

from typing import Callable, Protocol


class NavigationGuard(Protocol):
    """Anything that can veto leaving the current page."""

    def can_leave(self) -> bool: ...


class EditorStateRegistry:
    """Collects the guards of the editors currently open.

    Passed to whatever handles navigation, so it can ask before leaving
    without the editors publishing their state globally.
    """

    def __init__(self) -> None:
        self._guards: dict[str, NavigationGuard] = {}

    def register(self, name: str, guard: NavigationGuard) -> Callable[[], None]:
        """Add a guard under ``name``, replacing any previous one.

        Returns:
            Callable: Removes this guard again.
        """
        self._guards[name] = guard

        def unregister() -> None:
            if self._guards.get(name) is guard:
                del self._guards[name]

        return unregister

    def unregister(self, name: str) -> None:
        self._guards.pop(name, None)

    def blocking(self) -> list[str]:
        """Names of the editors that would lose work."""
        return [name for name, guard in self._guards.items() if not guard.can_leave()]

    def can_leave(self) -> bool:
        return not self.blocking()
