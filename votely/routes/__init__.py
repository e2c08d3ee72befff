def ok(message: str, data=None) -> dict:
    body = {"status": True, "message": message}
    if data is not None:
        body["data"] = data
    return body
