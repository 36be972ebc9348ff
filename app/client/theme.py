import enum

THEME_KEY = "taskflow-theme"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


_CYCLE = [Theme.LIGHT, Theme.DARK, Theme.AUTO]


class ThemePreference:
    """Theme choice kept in durable storage. ``auto`` follows the system."""

    def __init__(self, storage):
        self.storage = storage

    @property
    def current(self) -> Theme:
        try:
            return Theme(self.storage.get(THEME_KEY) or Theme.LIGHT.value)
        except ValueError:
            return Theme.LIGHT

    def set(self, theme: Theme) -> None:
        self.storage.set(THEME_KEY, Theme(theme).value)

    def cycle(self) -> Theme:
        next_theme = _CYCLE[(_CYCLE.index(self.current) + 1) % len(_CYCLE)]
        self.set(next_theme)
        return next_theme

    def resolve(self, system_prefers_dark: bool) -> Theme:
        """The theme to actually render: light or dark."""
        theme = self.current
        if theme is Theme.AUTO:
            return Theme.DARK if system_prefers_dark else Theme.LIGHT
        return theme
