"""Stay length, totals and the deposit/balance split. All money is whole currency units."""
from datetime import date, datetime

DEPOSIT_STEP = 50


def as_day(value):
    """Drop the time of day; stays are billed and blocked per calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def nights(check_in, check_out):
    check_in, check_out = as_day(check_in), as_day(check_out)
    if check_out <= check_in:
        raise ValueError("check_out must be after check_in")
    return (check_out - check_in).days


def total(nights_count, nightly_rate):
    return nights_count * nightly_rate


def deposit(total_amount):
    # Half of the total, rounded up to the next multiple of DEPOSIT_STEP.
    # Integer form of ceil(total * 0.5 / 50) * 50.
    step = 2 * DEPOSIT_STEP
    return -(-total_amount // step) * DEPOSIT_STEP


def balance(total_amount, deposit_amount):
    return total_amount - deposit_amount


def split(total_amount):
    deposit_amount = deposit(total_amount)
    return deposit_amount, balance(total_amount, deposit_amount)
