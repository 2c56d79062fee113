"""FastAPI dependency for the payment gateway created in the app lifespan."""

from fastapi import Request

from src.qm_payment.gateway import MockPaymentGateway


def get_payment_gateway(request: Request) -> MockPaymentGateway:
    return request.app.state.payment_gateway
