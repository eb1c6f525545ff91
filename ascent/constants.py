"""Physical constants shared by the vehicle model and flight software.

Values follow WGS84 and the standard-gravity definition used to convert
specific impulse into propellant mass flow.
"""

# =============================================================================
# Constants
# =============================================================================

# Standard gravity at sea level
G0: float = 9.80665  # [m/s^2]

# WGS84 Earth parameters
MU_EARTH: float = 3.986004418e14  # Gravitational parameter [m^3/s^2]
R_EARTH_EQ: float = 6378137.0  # Equatorial radius [m]
