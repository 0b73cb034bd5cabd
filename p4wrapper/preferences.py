import json
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from p4wrapper.errors import PreferencesError
from p4wrapper.utils.constants import DEFAULT_PREFS_PATH, ENV_PREFS_PATH, LOCAL_PREFS_NAME, UNLIMITED_LINES
from p4wrapper.utils.logging import logger
from p4wrapper.utils.platforms import Platform, current_platform

# Document key -> accepted aliases, first match wins
FIELD_KEYS = {
    'executablePath': ('executablePath', 'p4Path'),
    'logDirectory': ('logDirectory', 'logDir'),
    'maxOutputLines': ('maxOutputLines', 'maxLines'),
    'verbose': ('verbose',),
}

@dataclass(frozen=True)
class Preferences:
    executable_path: str
    log_directory: str
    max_output_lines: int = UNLIMITED_LINES
    verbose: bool = False

    def to_document(self) -> Dict[str, Any]:
        """Return the preferences keyed the way the preferences file stores them."""
        data = asdict(self)
        return {
            'executablePath': data['executable_path'],
            'logDirectory': data['log_directory'],
            'maxOutputLines': data['max_output_lines'],
            'verbose': data['verbose'],
        }


def get_prefs_path() -> str:
    """Get the preferences file path.

    The environment variable wins, then a p4-wrapper.json in the current
    working directory, then the file in the home directory.
    """
    env_path = os.environ.get(ENV_PREFS_PATH)
    if env_path and env_path.strip():
        return env_path.strip()

    try:
        local_path = os.path.join(os.getcwd(), LOCAL_PREFS_NAME)
    except OSError:
        return DEFAULT_PREFS_PATH
    if os.path.isfile(local_path):
        return local_path
    return DEFAULT_PREFS_PATH


class PreferencesLoader:
    """Loads wrapper preferences from a JSON document.

    A missing file yields the platform defaults. Missing or blank fields fall
    back to the same defaults individually; a zero line limit means unlimited.
    """

    def __init__(self, prefs_path: Optional[str] = None, platform: Optional[Platform] = None):
        self.prefs_path = prefs_path or get_prefs_path()
        self.platform = platform or current_platform()

    def defaults(self) -> Preferences:
        return Preferences(
            executable_path=self.platform.default_executable,
            log_directory=self.platform.default_log_directory,
            max_output_lines=UNLIMITED_LINES,
            verbose=False
        )

    def read_document(self) -> Dict[str, Any]:
        """Read the raw preferences document.

        Returns:
            Dict: Parsed document, empty if the file does not exist

        Raises:
            PreferencesError: If the file is unreadable or not a JSON object
        """
        if not os.path.exists(self.prefs_path):
            logger.debug("No preferences file at %s, using defaults", self.prefs_path)
            return {}

        try:
            with open(self.prefs_path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Malformed preferences file %s: %s", self.prefs_path, e)
            raise PreferencesError(f"Malformed preferences file {self.prefs_path}: {e}") from e
        except OSError as e:
            logger.error("Failed to read preferences file %s: %s", self.prefs_path, e)
            raise PreferencesError(f"Cannot read preferences file {self.prefs_path}: {e}") from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise PreferencesError(f"Preferences file {self.prefs_path} must contain a JSON object")
        return document

    def _field(self, document: Dict[str, Any], key: str) -> Any:
        for alias in FIELD_KEYS[key]:
            if alias in document and document[alias] is not None:
                return document[alias]
        return None

    def _string_field(self, document: Dict[str, Any], key: str, default: str) -> str:
        value = self._field(document, key)
        if value is None:
            return default
        if not isinstance(value, str):
            raise PreferencesError(f"Preference {key} must be a string, got {value!r}")
        return value if value.strip() else default

    def load(self) -> Preferences:
        """Load preferences, falling back to platform defaults field by field.

        Raises:
            PreferencesError: If the document is malformed or a field has the wrong type
        """
        document = self.read_document()
        defaults = self.defaults()

        max_lines = self._field(document, 'maxOutputLines')
        if max_lines is None or max_lines == 0:
            max_lines = defaults.max_output_lines
        elif isinstance(max_lines, bool) or not isinstance(max_lines, int):
            raise PreferencesError(f"Preference maxOutputLines must be an integer, got {max_lines!r}")

        verbose = self._field(document, 'verbose')
        if verbose is None:
            verbose = defaults.verbose
        elif not isinstance(verbose, bool):
            raise PreferencesError(f"Preference verbose must be a boolean, got {verbose!r}")

        prefs = Preferences(
            executable_path=self._string_field(document, 'executablePath', defaults.executable_path),
            log_directory=self._string_field(document, 'logDirectory', defaults.log_directory),
            max_output_lines=max_lines,
            verbose=verbose
        )
        logger.debug("Loaded preferences from %s: %s", self.prefs_path, prefs)
        return prefs

    def save(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Merge updates into the preferences document and write it back.

        Keys not named in updates are preserved. Returns the written document.
        """
        document = self.read_document()
        for key, value in updates.items():
            for alias in FIELD_KEYS.get(key, ()):
                document.pop(alias, None)
            document[key] = value

        prefs_dir = os.path.dirname(self.prefs_path)
        if prefs_dir:
            os.makedirs(prefs_dir, mode=0o755, exist_ok=True)

        with open(self.prefs_path, 'w', encoding='utf-8') as f:
            json.dump(document, f, indent=2, sort_keys=True)
            f.write("\n")
        logger.info("Saved preferences to %s", self.prefs_path)
        return document
