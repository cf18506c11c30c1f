"""
Values that must never show up in log output.
"""

from __future__ import annotations

from typing import Any

HIDDEN = "[Hidden Secret]"


class Secret:
    """Wraps a value so that logging it prints ``[Hidden Secret]``.

    ```python
    token = Secret(os.environ["API_TOKEN"])
    log.info("Using token", token)  # Using token [Hidden Secret]
    requests.get(url, headers={"Authorization": token.secret})
    ```

    Wrapping a ``Secret`` in another ``Secret`` unwraps it.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Any) -> None:
        self.secret = value

    @property
    def secret(self) -> Any:
        return self._value

    @secret.setter
    def secret(self, value: Any) -> None:
        self._value = value.secret if isinstance(value, Secret) else value

    def __repr__(self) -> str:
        return HIDDEN

    __str__ = __repr__

    def __jsonify_for_log__(self) -> str:
        return HIDDEN
