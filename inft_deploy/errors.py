"""
Exceptions raised by the deployment helpers
"""


class InftDeployError(Exception):
    """Base class for all deployment helper errors"""


class ConfigError(InftDeployError, ValueError):
    """Invalid configuration value"""


class ChainError(InftDeployError, RuntimeError):
    """Local node could not be started or reached"""


class ArtifactNotFoundError(InftDeployError, LookupError):
    """No ABI/bytecode could be resolved for a contract name"""

    def __init__(self, name: str, searched=None):
        self.name = name
        self.searched = list(searched or [])
        message = f"Contract artifact not found: {name}"
        if self.searched:
            message += f" (searched: {', '.join(str(p) for p in self.searched)})"
        super().__init__(message)


class ContractNotFoundError(InftDeployError):
    """No contract code at the address an artifact was attached to"""

    def __init__(self, name: str, address: str):
        self.name = name
        self.address = address
        super().__init__(f"Cannot create instance of {name}; no code at address {address}")


class DeploymentError(InftDeployError, RuntimeError):
    """Deployment or administrative transaction failed"""

    def __init__(self, message: str, receipt=None):
        self.receipt = receipt
        super().__init__(message)
