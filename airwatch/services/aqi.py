"""
AQI Calculation Services

PM2.5 index and category helpers based on the WHO 2021 guideline bands.
"""

# (upper PM2.5 bound, category, severity key, color, description)
CATEGORY_BANDS = [
    (15.0, 'Good', 'good', 'success', 'Air quality is satisfactory'),
    (25.0, 'Moderate', 'moderate', 'warning', 'Air quality is acceptable'),
    (35.0, 'Unhealthy for Sensitive Groups', 'unhealthy_sensitive', 'orange',
     'Sensitive individuals should limit outdoor activity'),
    (55.0, 'Unhealthy', 'unhealthy', 'danger', 'Everyone may experience health effects'),
    (150.0, 'Very Unhealthy', 'very_unhealthy', 'purple', 'Health alert: serious effects possible'),
    (None, 'Hazardous', 'hazardous', 'dark', 'Health warning of emergency conditions'),
]

CATEGORY_ORDER = [band[1] for band in CATEGORY_BANDS]

NO_DATA = 'No Data'


def calculate_aqi(pm25):
    """Calculate a 0-500 index from PM2.5 by linear interpolation between breakpoints"""

    if not pm25:
        return 0

    breakpoints = [
        (0.0, 15.0, 0, 50),
        (15.0, 25.0, 50, 100),
        (25.0, 35.0, 100, 150),
        (35.0, 55.0, 150, 200),
        (55.0, 150.0, 200, 300),
        (150.0, 500.0, 300, 500),
    ]

    for bp_lo, bp_hi, aqi_lo, aqi_hi in breakpoints:
        if pm25 <= bp_hi:
            aqi = ((aqi_hi - aqi_lo) / (bp_hi - bp_lo)) * (pm25 - bp_lo) + aqi_lo
            return int(round(aqi))

    return 500


def _band(pm25):
    for band in CATEGORY_BANDS:
        upper = band[0]
        if upper is None or pm25 <= upper:
            return band
    return CATEGORY_BANDS[-1]


def aqi_category(pm25):
    """Human-readable category for a PM2.5 value"""
    if pm25 is None:
        return NO_DATA
    return _band(pm25)[1]


def severity_level(pm25):
    if pm25 is None:
        return 'unknown'
    return _band(pm25)[2]


def category_rank(category):
    """Position of a category from best (0) to worst; unknown categories sort last."""
    try:
        return CATEGORY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_ORDER)


def calculate_aqi_status(pm25):
    """Get human-readable status from PM2.5 value"""
    if pm25 is None:
        return {
            'level': NO_DATA,
            'severity': 'unknown',
            'color': 'secondary',
            'description': 'PM2.5 data not available'
        }

    _, level, severity, color, description = _band(pm25)
    return {
        'level': level,
        'severity': severity,
        'color': color,
        'description': description
    }


def health_message(pm25):
    if pm25 is None:
        return 'Air quality data unavailable'
    if pm25 <= 15:
        return 'Air quality is good for outdoor activities'
    if pm25 <= 25:
        return 'Air quality is acceptable for most people'
    if pm25 <= 35:
        return 'Sensitive individuals should consider limiting prolonged outdoor exertion'
    if pm25 <= 55:
        return 'Everyone should limit prolonged outdoor exertion'
    return 'Avoid outdoor activities. Health alert in effect.'


def category_to_quality_flag(category):
    """Map an AQI category label to a measurement quality flag (1-3)."""
    mapping = {
        'Good': 1,
        'Moderate': 1,
        'Unhealthy for Sensitive Groups': 2,
        'Unhealthy': 2,
        'Very Unhealthy': 3,
        'Hazardous': 3
    }
    return mapping.get(category, 2)


def alert_severity(pm25):
    """Alert severity for a PM2.5 level."""
    if pm25 > 75:
        return 'critical'
    if pm25 > 55:
        return 'high'
    if pm25 > 35:
        return 'medium'
    return 'low'
