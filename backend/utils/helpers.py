# utils/helpers.py
def safe_strip(value):
    """Safely strip a string value, handling None"""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def get_json_body(request):
    """Return the request's JSON object body, or an empty dict for anything else"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
