"""
Theme Preference Store.

Holds each user's light/dark preference in a `KeyValueStore` under the key
`theme:{user_id}`. Light is the default: a user with no saved value gets `light`
persisted on first load. A failing store never fails a request; the error is
logged and the user sees light mode.
"""

import logging
from typing import Dict

from providers.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

THEME_KEY = "theme"
LIGHT = "light"
DARK = "dark"

LIGHT_PALETTE: Dict[str, str] = {
    # base
    "background": "#f5f5f5",
    "surface": "#ffffff",
    "text": "#000000",
    "textSecondary": "#666666",
    "primary": "#0066cc",
    "secondary": "#4CAF50",
    "error": "#F44336",
    "warning": "#FFC107",
    "success": "#4CAF50",
    "border": "#e0e0e0",
    "divider": "#e0e0e0",
    # inputs
    "inputBackground": "#f5f5f5",
    "inputText": "#000000",
    "inputPlaceholder": "#999999",
    "inputBorder": "#e0e0e0",
    # cards
    "cardBackground": "#ffffff",
    "cardShadow": "#000000",
    "modalBackground": "#ffffff",
    # navigation
    "headerBackground": "#ffffff",
    "headerText": "#000000",
    "tabBackground": "#ffffff",
    "tabActiveText": "#0066cc",
    "tabInactiveText": "#666666",
    "tabBorder": "#e0e0e0",
    "tabIndicator": "#0066cc",
    # buttons
    "buttonPrimary": "#0066cc",
    "buttonPrimaryText": "#ffffff",
    "buttonSecondary": "#f5f5f5",
    "buttonSecondaryText": "#000000",
    "buttonDisabled": "#cccccc",
    "buttonDisabledText": "#666666",
    # chat
    "messageBubbleUser": "#0066cc",
    "messageBubbleBot": "#ffffff",
    "messageBubbleBotBorder": "#e0e0e0",
    "messageTextUser": "#ffffff",
    "messageTextBot": "#000000",
    # profile
    "profileHeaderBackground": "#ffffff",
    "profileHeaderText": "#000000",
    "profileCardBackground": "#ffffff",
    "profileCardText": "#000000",
    # qr
    "qrBackground": "#ffffff",
    "qrBorder": "#e0e0e0",
    # status
    "online": "#4CAF50",
    "offline": "#F44336",
    "busy": "#FFC107",
}

DARK_PALETTE: Dict[str, str] = {
    "background": "#121212",
    "surface": "#1e1e1e",
    "text": "#ffffff",
    "textSecondary": "#b0b0b0",
    "primary": "#4d94ff",
    "secondary": "#66bb6a",
    "error": "#f44336",
    "warning": "#ffd54f",
    "success": "#66bb6a",
    "border": "#2d2d2d",
    "divider": "#2d2d2d",
    "inputBackground": "#2d2d2d",
    "inputText": "#ffffff",
    "inputPlaceholder": "#808080",
    "inputBorder": "#3d3d3d",
    "cardBackground": "#1e1e1e",
    "cardShadow": "#000000",
    "modalBackground": "#1e1e1e",
    "headerBackground": "#1e1e1e",
    "headerText": "#ffffff",
    "tabBackground": "#1e1e1e",
    "tabActiveText": "#4d94ff",
    "tabInactiveText": "#b0b0b0",
    "tabBorder": "#2d2d2d",
    "tabIndicator": "#4d94ff",
    "buttonPrimary": "#4d94ff",
    "buttonPrimaryText": "#ffffff",
    "buttonSecondary": "#2d2d2d",
    "buttonSecondaryText": "#ffffff",
    "buttonDisabled": "#404040",
    "buttonDisabledText": "#808080",
    "messageBubbleUser": "#4d94ff",
    "messageBubbleBot": "#2d2d2d",
    "messageBubbleBotBorder": "#3d3d3d",
    "messageTextUser": "#ffffff",
    "messageTextBot": "#ffffff",
    "profileHeaderBackground": "#1e1e1e",
    "profileHeaderText": "#ffffff",
    "profileCardBackground": "#2d2d2d",
    "profileCardText": "#ffffff",
    "qrBackground": "#2d2d2d",
    "qrBorder": "#3d3d3d",
    "online": "#66bb6a",
    "offline": "#f44336",
    "busy": "#ffd54f",
}


class ThemeStore:
    """Per-user light/dark preference over a key-value store"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{THEME_KEY}:{user_id}"

    async def load(self, user_id: str) -> bool:
        """Saved preference as `is_dark`; persists light when none is saved"""
        try:
            saved = await self.store.get_item(self._key(user_id))
            if saved is None:
                await self.store.set_item(self._key(user_id), LIGHT)
                return False
            return saved == DARK
        except (OSError, ValueError) as e:
            logger.error(f"Error loading theme preference for {user_id}: {e}")
            return False

    async def set(self, user_id: str, dark: bool) -> bool:
        try:
            await self.store.set_item(self._key(user_id), DARK if dark else LIGHT)
        except (OSError, ValueError) as e:
            logger.error(f"Error saving theme preference for {user_id}: {e}")
        return dark

    async def toggle(self, user_id: str) -> bool:
        return await self.set(user_id, not await self.load(user_id))

    @staticmethod
    def palette(dark: bool) -> Dict[str, str]:
        return dict(DARK_PALETTE if dark else LIGHT_PALETTE)

    async def describe(self, user_id: str) -> Dict[str, object]:
        dark = await self.load(user_id)
        return {
            "theme": DARK if dark else LIGHT,
            "is_dark": dark,
            "palette": self.palette(dark),
        }
