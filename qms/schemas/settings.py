"""Settings payload: a flat map of setting keys to values."""
from typing import Dict, Union

from pydantic import RootModel


class SettingsIn(RootModel[Dict[str, Union[str, int, float]]]):

    def as_strings(self) -> Dict[str, str]:
        return {key: str(value) for key, value in self.root.items()}
