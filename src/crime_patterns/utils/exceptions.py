


class CrimePatternException(Exception):
    """Base Exception Class"""
    pass
class DataRetrievalError(CrimePatternException):
    """Error class for when the incident source fails or times out"""
    pass
class MalformedIncidentError(CrimePatternException):
    """Error for an incident record that cannot be used for detection"""
    pass
class PatternValidationError(CrimePatternException):
    """A detector produced a pattern that breaks the output contract"""
    pass
class GeocodingError(CrimePatternException):
    """Error resolving a location key to coordinates"""
    pass
class ConfigError(CrimePatternException):
    """Config Error"""
    pass
