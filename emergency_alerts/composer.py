"""
Builds the outgoing SMS text from a validated alert request.
"""

from typing import Union

from emergency_alerts.schemas import AlertRequest

MAPS_URL = "https://maps.google.com/?q={latitude},{longitude}"


def _format_number(value: Union[int, float]) -> str:
    """Render 5.0 as "5" and 40.7128 as "40.7128"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def compose_message(request: AlertRequest) -> str:
    """
    Compose the final message text.

    Clauses are appended in a fixed order: location link, intensity, time.
    None means absent; an intensity of 0 is still printed, an empty
    timestamp is not.
    """
    msg = request.message

    location = request.location
    if location is not None and location.latitude is not None and location.longitude is not None:
        link = MAPS_URL.format(
            latitude=_format_number(location.latitude),
            longitude=_format_number(location.longitude),
        )
        msg += f"\n\nLocation: {link}"

    if request.intensity is not None:
        msg += f"\nIntensity: {_format_number(request.intensity)}"

    if request.timestamp:
        msg += f"\nTime: {request.timestamp}"

    return msg
