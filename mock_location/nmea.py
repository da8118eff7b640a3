"""
NMEA 0183 rendering of location samples.

Only the two sentences most consumers need are produced: GGA (fix data,
altitude) and RMC (recommended minimum, speed and course).
"""

from typing import List

from .models import LocationSample

KNOTS_PER_MPS = 1.0 / 0.514444


def checksum(body: str) -> str:
    """XOR of every character between '$' and '*', as two hex digits."""
    value = 0
    for c in body:
        value ^= ord(c)
    return f"{value:02X}"


def _sentence(body: str) -> str:
    return f"${body}*{checksum(body)}"


def _degrees_minutes(value: float):
    degrees = int(abs(value))
    minutes = round((abs(value) - degrees) * 60, 4)
    if minutes >= 60.0:
        degrees += 1
        minutes -= 60.0
    return degrees, minutes


def format_latitude(lat: float):
    degrees, minutes = _degrees_minutes(lat)
    return f"{degrees:02d}{minutes:07.4f}", "N" if lat >= 0 else "S"


def format_longitude(lon: float):
    degrees, minutes = _degrees_minutes(lon)
    return f"{degrees:03d}{minutes:07.4f}", "E" if lon >= 0 else "W"


def _utc_time(sample: LocationSample) -> str:
    ts = sample.timestamp
    return ts.strftime("%H%M%S.") + f"{ts.microsecond // 10000:02d}"


def gga(sample: LocationSample, num_sats: int = 8, hdop: float = 1.0) -> str:
    lat, lat_dir = format_latitude(sample.latitude)
    lon, lon_dir = format_longitude(sample.longitude)
    hhmmss = _utc_time(sample)
    body = (f"GPGGA,{hhmmss},{lat},{lat_dir},{lon},{lon_dir},1,{num_sats:02d},"
            f"{hdop:.1f},{sample.altitude:.1f},M,0.0,M,,")
    return _sentence(body)


def rmc(sample: LocationSample) -> str:
    lat, lat_dir = format_latitude(sample.latitude)
    lon, lon_dir = format_longitude(sample.longitude)
    hhmmss = _utc_time(sample)
    date = sample.timestamp.strftime("%d%m%y")
    knots = sample.speed * KNOTS_PER_MPS
    body = (f"GPRMC,{hhmmss},A,{lat},{lat_dir},{lon},{lon_dir},"
            f"{knots:.2f},{sample.bearing:.1f},{date},,,A")
    return _sentence(body)


def sentences(sample: LocationSample) -> List[str]:
    """All sentences for one sample, in output order."""
    return [gga(sample), rmc(sample)]
