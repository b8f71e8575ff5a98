from src.sms.client import SmsGatewayClient, SmsGatewayConfig, SmsGatewayError

__all__ = [
    "SmsGatewayClient",
    "SmsGatewayConfig",
    "SmsGatewayError",
]
