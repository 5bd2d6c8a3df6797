"""Adjustments applied to every request before it reaches the generator."""

from __future__ import annotations

from wirehead.render.models import GenerationParameters, RenderLimits

__all__ = [
    "extract_keywords",
    "prepend_keyword_if_necessary",
    "fixup_resolution",
    "fixup_request",
]


def _last_bracketed(text: str) -> str | None:
    left = text.rfind("[")
    right = text.rfind("]")
    if left == -1 or right == -1 or left >= right:
        return None
    return text[left + 1 : right]


def extract_keywords(model_name: str) -> list[str]:
    """Keywords listed in the last ``[...]`` of a model name.

    >>> extract_keywords("Inkpunk v1 [nvinkpunk]")
    ['nvinkpunk']
    """
    bracketed = _last_bracketed(model_name)
    if bracketed is None:
        return []
    return [keyword.strip() for keyword in bracketed.split(",")]


def prepend_keyword_if_necessary(prompt: str, model_name: str) -> str:
    # Only unambiguous (single keyword) models are handled.
    keywords = extract_keywords(model_name)
    if len(keywords) != 1:
        return prompt
    (keyword,) = keywords
    if keyword in prompt:
        return prompt
    return f"{keyword}, {prompt}"


def fixup_resolution(width: int, height: int, limits: RenderLimits) -> tuple[int, int]:
    """Scale down to the configured maxima, then round to ``limits.round_to``."""
    if width > limits.width_max:
        scale = width / limits.width_max
        width, height = int(width / scale), int(height / scale)
    if height > limits.height_max:
        scale = height / limits.height_max
        width, height = int(width / scale), int(height / scale)

    step = limits.round_to
    width = max(step, ((width + step // 2) // step) * step)
    height = max(step, ((height + step // 2) // step) * step)
    return width, height


def fixup_request(
    parameters: GenerationParameters, prompt: str, limits: RenderLimits
) -> tuple[GenerationParameters, str]:
    if limits.prepend_model_keyword and parameters.model:
        prompt = prepend_keyword_if_necessary(prompt, parameters.model)
    width, height = fixup_resolution(parameters.width, parameters.height, limits)
    if (width, height) != (parameters.width, parameters.height):
        parameters = parameters.model_copy(update={"width": width, "height": height})
    return parameters, prompt
