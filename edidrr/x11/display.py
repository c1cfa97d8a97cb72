"""X11 display connection and management"""

import logging
from typing import Optional, Sequence

from Xlib import display as xdisplay
from Xlib import error as xerror
from Xlib.display import Display

from edidrr.common.errors import BackendUnavailableError

logger = logging.getLogger(__name__)


def text_decode(value: object) -> str:
    """
    Normalise an X string field to str

    python-xlib returns STRING8 fields as bytes or str depending on version.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    return str(value)


class DisplayManager:
    """Manages one X11 display connection and its required extensions"""

    def __init__(
        self,
        display_name: Optional[str] = None,
        required_extensions: Sequence[str] = ("RANDR",),
    ) -> None:
        """
        Initialize display manager

        Args:
            display_name: X11 display name (e.g., ':0'), None for default
            required_extensions: Extensions that must be present
        """
        self._display: Optional[Display] = None
        self._display_name: Optional[str] = display_name
        self._required_extensions: tuple[str, ...] = tuple(required_extensions)

    def connection_establish(self) -> None:
        """
        Establish connection to X11 display

        Raises:
            BackendUnavailableError: If the display cannot be opened or an
                extension is missing
        """
        if self._display is not None:
            return
        try:
            display = xdisplay.Display(self._display_name)
        except (xerror.DisplayError, OSError) as e:
            raise BackendUnavailableError(
                f"Failed to open X display {self._display_name or '(default)'}: {e}"
            ) from e

        for extension in self._required_extensions:
            if not display.has_extension(extension):
                display.close()
                raise BackendUnavailableError(
                    f"X extension {extension} not available on this display"
                )

        self._display = display
        logger.debug(f"Connected to X display {display.get_display_name()}")

    def connection_close(self) -> None:
        """Close X11 display connection"""
        if self._display is not None:
            self._display.close()
            self._display = None

    def display_get(self) -> Display:
        """
        Get X11 display object

        Returns:
            X11 Display object

        Raises:
            RuntimeError: If not connected to display
        """
        if self._display is None:
            raise RuntimeError("Not connected to X11 display")
        return self._display

    def atom_get(self, name: str) -> int:
        """
        Look up an existing atom

        Args:
            name: Atom name

        Returns:
            Atom id, or 0 if the server does not know the name
        """
        return self.display_get().get_atom(name, only_if_exists=True)

    def __enter__(self) -> "DisplayManager":
        """Context manager entry"""
        self.connection_establish()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit"""
        self.connection_close()


class XErrorTrap:
    """
    Collect the X errors of void requests issued inside a with block

    Void requests (no reply) report errors asynchronously to the display's
    error handler. The trap installs a collecting handler, forces a round
    trip on exit so pending errors arrive, then restores the default handler.
    """

    def __init__(self, display: Display) -> None:
        """
        Initialize error trap

        Args:
            display: Connected display
        """
        self._display = display
        self.errors: list[xerror.XError] = []

    def _error_record(self, error: xerror.XError, request: object = None) -> None:
        logger.debug(f"Trapped X error: {error}")
        self.errors.append(error)

    def __enter__(self) -> "XErrorTrap":
        self._display.set_error_handler(self._error_record)
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        try:
            self._display.sync()
        finally:
            self._display.set_error_handler(None)
