"""Hue to display color conversion."""


def hue_to_rgb(hue: int) -> tuple[int, int, int]:
    """Fully saturated, full value RGB for a hue in degrees.

    Hues above 360 wrap to red.
    """
    h = float(hue)
    if h > 360:
        h = 0.0
    h /= 60.0

    sector = int(h)
    f = h - sector
    q = 1.0 - f

    if sector == 0:
        rgb = (1.0, f, 0.0)
    elif sector == 1:
        rgb = (q, 1.0, 0.0)
    elif sector == 2:
        rgb = (0.0, 1.0, f)
    elif sector == 3:
        rgb = (0.0, q, 1.0)
    elif sector == 4:
        rgb = (f, 0.0, 1.0)
    else:
        rgb = (1.0, 0.0, q)

    return tuple(int(c * 255) for c in rgb)


def hue_to_hex(hue: int) -> str:
    """Hex color string such as ``#FF0000`` for a hue."""
    r, g, b = hue_to_rgb(hue)
    return f"#{r:02X}{g:02X}{b:02X}"
