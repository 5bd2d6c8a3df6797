from __future__ import annotations

from wirehead.feedback.loop import FeedbackLoop, render_images
