def ok(data=None) -> dict:
    return {"success": True, "data": data, "error": None}


def failure(message: str) -> dict:
    return {"success": False, "data": None, "error": message}
