# core/api.py

"""
API ERROR NORMALIZATION

Canonical error envelope for every ledger endpoint:
    {"error": {"code": "...", "message": "..."}}
"""

from rest_framework.response import Response

from core.exceptions import LedgerError


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def ledger_error_response(exc: LedgerError):
    return error_response(
        code=exc.code,
        message=exc.message,
        http_status=exc.http_status,
    )
