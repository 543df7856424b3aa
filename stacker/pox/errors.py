class ConfigurationError(Exception):
    """Exception raised when the stacking configuration cannot be loaded."""

    def __init__(self, message: str = "Invalid configuration."):
        self.message = message
        super().__init__(self.message)


class UnsupportedPoxContractError(Exception):
    """Exception raised when the node runs a PoX contract we don't stack against."""

    def __init__(self, contract_id: str, message: str = ""):
        self.contract_id = contract_id
        self.message = (
            message or f"Pox contract is not supported (contract={contract_id})"
        )
        super().__init__(self.message)


class InsufficientBalanceError(Exception):
    """Exception raised when an account can't cover the planned stack amount."""

    def __init__(self, amount: int, balance: int, message: str = ""):
        self.amount = amount
        self.balance = balance
        self.message = (
            message
            or f"Insufficient balance to stack-stx (amount={amount}, balance={balance})"
        )
        super().__init__(self.message)


class NodeRequestError(Exception):
    """Exception raised when a Stacks node RPC call fails."""

    def __init__(self, path: str, status: int | None = None, message: str = ""):
        self.path = path
        self.status = status
        self.message = message or f"Node request {path} failed (status={status})"
        super().__init__(self.message)
