"""
Haversine Algorithm - Calculate distance between two geographical points
Used to rank donors by distance from the requesting hospital
"""

import math

import numpy as np

# Radius of earth in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance, not road distance.

    Args:
        lat1, lon1: Latitude and longitude of point 1, in degrees
        lat2, lon2: Latitude and longitude of point 2, in degrees

    Returns:
        Distance in kilometers
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push a a hair past 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM


def haversine_distances(origin_lat, origin_lon, latitudes, longitudes):
    """
    Vectorised haversine from one origin to many points

    Args:
        origin_lat, origin_lon: Search centre in degrees
        latitudes, longitudes: Sequences of the same length, in degrees

    Returns:
        numpy array of distances in kilometers
    """
    lats = np.radians(np.asarray(latitudes, dtype=float))
    lons = np.radians(np.asarray(longitudes, dtype=float))
    lat0 = math.radians(origin_lat)
    lon0 = math.radians(origin_lon)

    a = np.sin((lats - lat0) / 2) ** 2 + math.cos(lat0) * np.cos(lats) * np.sin((lons - lon0) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def is_unknown_location(latitude, longitude):
    """Coordinates left unset, or both exactly zero, mean the location was never captured"""
    if latitude is None or longitude is None:
        return True
    return latitude == 0 and longitude == 0
