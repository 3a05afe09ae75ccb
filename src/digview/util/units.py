"""Human readable formatting of measured rates, periods and levels."""


def _four_digits(value: float) -> str:
    # 4 significant digits regardless of the decimal point placement
    eps = 1e-2
    if value >= 100 - eps:
        return f"{value:.1f}"
    elif value >= 10 - eps:
        return f"{value:.2f}"
    return f"{value:.3f}"


def _blank_if_zero(text: str) -> str:
    return "---.-" if float(text) == 0 else text


def convert_hz(value: float) -> str:
    if value >= 1e6:
        value /= 1e6
        unit = "MHz"
    elif value >= 1e3:
        value /= 1e3
        unit = "kHz"
    else:
        unit = "Hz"
    return f"{_blank_if_zero(_four_digits(value))} {unit}"


def convert_sec(value: float) -> str:
    if value < 1e-6:
        value *= 1e9
        unit = "ns"
    elif value < 1e-3:
        value *= 1e6
        unit = "µs"
    elif value < 1:
        value *= 1e3
        unit = "ms"
    else:
        unit = "s"
    return f"{_blank_if_zero(_four_digits(value))} {unit}"


def shorten_float(value: float) -> str:
    return f"{value:.1f}" if abs(value) >= 10 else f"{value:.3f}"
