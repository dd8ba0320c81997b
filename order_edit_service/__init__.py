"""Order edit service: tag-guarded order creation and editing on the commerce platform."""
