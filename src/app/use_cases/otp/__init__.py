"""
One-Time Passcode Use Cases
"""

from .codes import OtpCodeHasher, generate_code
from .request_otp_use_case import RequestOtpUseCase
from .verify_otp_use_case import VerifyOtpUseCase
from .dtos import IssuedOtp, RequestOtpResponse, VerifyOtpResponse

__all__ = [
    "RequestOtpUseCase",
    "VerifyOtpUseCase",
    "OtpCodeHasher",
    "generate_code",
    "IssuedOtp",
    "RequestOtpResponse",
    "VerifyOtpResponse",
]
