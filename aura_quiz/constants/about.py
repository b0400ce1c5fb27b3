"""Static metadata describing Aura Quiz."""

APP_NAME = "Aura Quiz"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Aura Quiz lets a creator rank the options of a short quiz, share it with a link, "
    "and see how friends score against that ranking."
)
