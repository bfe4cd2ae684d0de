class HookError(Exception):
    pass


class InvalidEventError(HookError):
    """
    Webhook payload가 reconcile 불가능한 경우 (repo_id 누락, 잘못된 envelope 등).
    Store 접근 전에 발생하며, retry해도 결과가 같으므로 delivery는 즉시 reject.
    """

    def __init__(self, message: str, delivery_id=None):
        super().__init__(message)
        self.delivery_id = delivery_id
