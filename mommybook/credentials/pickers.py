"""
Interactive credential pickers for command-line hosts.
"""

from __future__ import annotations

import asyncio
import getpass
import os
from typing import Callable, MutableMapping

from .manager import is_usable_key


class ConsoleCredentialPicker:
    """
    Prompt for an API key on the terminal and store it in the process environment.
    """

    def __init__(
        self,
        *,
        variable_name: str,
        environ: MutableMapping[str, str] | None = None,
        prompt_fn: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self._variable_name = variable_name
        self._environ = environ
        self._prompt_fn = prompt_fn

    async def has_selected_credential(self) -> bool:
        return is_usable_key(self._env.get(self._variable_name))

    async def open_select_credential(self) -> None:
        secret = await asyncio.to_thread(self._prompt_fn, f"Enter API key for {self._variable_name}: ")
        secret = (secret or "").strip()
        if not is_usable_key(secret):
            raise ValueError("The entered API key is empty or malformed.")
        self._env[self._variable_name] = secret

    @property
    def _env(self) -> MutableMapping[str, str]:
        return os.environ if self._environ is None else self._environ
