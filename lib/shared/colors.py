import re

# Quake style color escapes, white (^7) is what chat falls back to
COLOR_CODES = {
    "black": "^0",
    "red": "^1",
    "green": "^2",
    "yellow": "^3",
    "blue": "^4",
    "lblue": "^5",
    "pink": "^6",
    "default": "^7",
    "orange": "^8",
    "gray": "^9",
}

_COLOR_ESCAPE = re.compile(r"\^\d")


def ColorizeText(text, colorName, restoreColor = "default") -> str:
    return COLOR_CODES[colorName] + str(text) + COLOR_CODES[restoreColor]

def StripColorCodes(text) -> str:
    return _COLOR_ESCAPE.sub("", text)
