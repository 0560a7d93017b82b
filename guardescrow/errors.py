from __future__ import annotations


class EscrowError(ValueError):
    code: int = 0
    message: str = "Escrow operation failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        text = self.message if detail is None else f"{self.message}: {detail}"
        super().__init__(text)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.name, "code": self.code, "message": str(self)}


class EscrowAlreadyFunded(EscrowError):
    code = 6000
    message = "Escrow is already funded, cannot perform this operation"


class EscrowNotFunded(EscrowError):
    code = 6001
    message = "Escrow is not funded yet"


class UnauthorizedOperation(EscrowError):
    code = 6002
    message = "You are not authorized to perform this operation"


class InvalidAmount(EscrowError):
    code = 6003
    message = "Invalid amount specified (must be greater than 0)"


class InvalidState(EscrowError):
    code = 6005
    message = "Invalid escrow state for this operation"


class InvalidTimeout(EscrowError):
    code = 6006
    message = "Invalid timeout period (must be greater than 0)"


# Substrate errors

class EscrowNotFound(EscrowError):
    code = 3012
    message = "Escrow account not found"


class AddressMismatch(EscrowError):
    code = 2006
    message = "Custody address does not match its derivation"


class AccountAlreadyInUse(EscrowError):
    code = 1
    message = "Account already in use"


class AccountNotFound(EscrowError):
    code = 3
    message = "Account not found"


class InsufficientFunds(EscrowError):
    code = 2
    message = "Insufficient funds for transfer"
