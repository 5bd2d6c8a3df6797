from __future__ import annotations

from wirehead.session.manager import SessionManager
from wirehead.session.options import SessionOptions
from wirehead.session.session import Session
