"""OTP-gated signup: mobile number verification in front of account creation."""
