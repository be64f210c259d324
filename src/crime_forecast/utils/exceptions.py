class ForecastEngineError(Exception):
    """Base Exception Class"""
    pass
class DataUnavailable(ForecastEngineError):
    """Error for when the record snapshot is empty or a filter leaves nothing to work with"""
    pass
class InsufficientData(ForecastEngineError):
    """Error for when there are fewer records than an operation needs"""
    pass
class InvalidCoordinate(ForecastEngineError):
    """Coordinate is missing, degenerate or outside the valid bounding box"""
    pass
class ComputationDegenerate(ForecastEngineError):
    """Zero variance or zero baseline. Guarded with defaults, never raised to callers"""
    pass
class MLServiceUnavailable(ForecastEngineError):
    """Error for when the external prediction service fails, times out or answers garbage"""
    pass
class ConfigError(ForecastEngineError):
    """Config Error"""
    pass
