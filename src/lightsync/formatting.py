"""Human-readable status strings for a light state."""

from lightsync.state.model import DeviceState, LightCapabilities


def format_status(state: DeviceState, capabilities: LightCapabilities) -> str:
    """Format a state like "(on 80 hue: 120.00° sat: 50.00% val: 100.00%)"."""
    text = "on" if state.on else "off"
    if capabilities.brightness_control:
        text += f" {state.brightness}"
    if capabilities.color_control and state.color is not None:
        text += f" hue: {state.color.hue:.2f}°"
        text += f" sat: {state.color.saturation * 100:.2f}%"
        text += f" val: {state.color.value * 100:.2f}%"
    return f"({text})"
