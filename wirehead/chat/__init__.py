from __future__ import annotations

from wirehead.chat.base import Button, ButtonStyle, Channel, Post
from wirehead.chat.directory import DirectoryChannel
