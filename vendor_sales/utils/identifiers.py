from datetime import date


def _daily_code(prefix: str, day: date, daily_count: int) -> str:
    return f"{prefix}-{day.strftime('%Y%m%d')}-{daily_count + 1:03d}"


def generate_sale_code(day: date, daily_count: int) -> str:
    """VT-YYYYMMDD-NNN, where daily_count is the number of sales already on that day"""
    return _daily_code("VT", day, daily_count)


def generate_batch_code(day: date, daily_count: int) -> str:
    """PB-YYYYMMDD-NNN"""
    return _daily_code("PB", day, daily_count)


def generate_vendor_code(last_number: int) -> str:
    """VND-NNN"""
    return f"VND-{last_number + 1:03d}"


def parse_vendor_number(vendor_code: str) -> int:
    try:
        return int(vendor_code.rsplit("-", 1)[1])
    except (IndexError, ValueError, AttributeError):
        return 0
