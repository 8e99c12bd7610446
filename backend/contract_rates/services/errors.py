class ContractRateError(Exception):
    """Base exception for contract rate related errors"""
    pass


class UnknownUnitTypeError(ContractRateError):
    """Raised when a rate row names a unit type the engine has no quantity for"""
    pass


class ConfigurationError(ContractRateError):
    """Raised when the contract rate reference data cannot be loaded"""
    pass


class MatrixValidationError(ContractRateError):
    """Raised when a rate matrix breaks its own invariants"""

    def __init__(self, message: str, problems=None):
        super().__init__(message)
        self.problems = list(problems or [])
