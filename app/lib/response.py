class Response:

    def __init__(self, message="", data=None, status=200, success=None, **extra):
        self.status = status
        self.message = message
        self.data = data if data is not None else {}
        self.success = success if success is not None else status < 400
        self.extra = extra

    def to_dict(self):
        body = {
            "success": self.success,
            "message": self.message,
            "data": self.data,
        }
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body, self.status
