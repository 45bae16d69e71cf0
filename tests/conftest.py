"""
Shared builders for wire-format closure files.
"""
import pytest

from closure_audit import SourceFile

DATE = "20240115"
Z = "000123"


def _join(fields_by_index, width):
    parts = [""] * width
    for index, value in fields_by_index.items():
        parts[index] = str(value)
    return "|".join(parts)


def file_name(code, seq=1):
    # transaction code sits at characters 18..23
    return f"POS001_20240115_00{code}_{seq:04d}.txt"


def item(category=10, net=4132, gross=5000, units=1, base=5000, d1=0, d2=0, d3=0, code="ART001", record_id="501"):
    return {
        "record_id": record_id, "code": code, "category": category, "net": net, "gross": gross,
        "units": units, "base": base, "d1": d1, "d2": d2, "d3": d3,
    }


def item_line(it):
    return _join({
        0: it["record_id"], 1: it["code"], 2: "Test article", 4: it["category"],
        5: it["net"], 6: it["gross"], 8: it["units"], 9: it["base"],
        12: it["d1"], 13: 1, 14: 2100, 19: it["d2"], 21: it["d3"],
    }, 22)


def ticket_content(
    ticket=1,
    kind=1,
    date=DATE,
    time="101500",
    z=Z,
    items=None,
    payments=None,
    taxes=None,
    gross=None,
    net=None,
    tax=None,
    discount=0,
    pcts=(0, 0, 0),
    units=None,
):
    items = [item()] if items is None else items
    gross = sum(i["gross"] for i in items) if gross is None else gross
    net = sum(i["net"] for i in items) if net is None else net
    tax = gross - net if tax is None else tax
    units = sum(i["units"] for i in items) if units is None else units
    payments = [gross] if payments is None else payments
    taxes = [(net, tax)] if taxes is None else taxes

    header = _join({
        0: "11004", 1: date, 2: time, 3: z, 4: ticket, 6: kind,
        11: net, 12: gross, 13: tax, 14: discount, 15: pcts[0],
        16: len(items), 19: units, 30: pcts[1], 32: pcts[2],
    }, 33)
    lines = [header]
    lines += [item_line(i) for i in items]
    lines += [f"{601 + n}|1|1|{amount}" for n, amount in enumerate(payments)]
    lines += [f"{701 + n}|1||{base}|{amount}" for n, (base, amount) in enumerate(taxes)]
    return "\n".join(lines) + "\n"


def category_line(category=10, sale_units=0, sale_gross=0, sale_net=0, sale_discount=0,
                  return_units=0, return_gross=0, return_net=0, return_discount=0, record_id=1, family=1):
    return "|".join(str(v) for v in (
        record_id, family, category, 1,
        sale_units, sale_gross, sale_net, sale_discount,
        return_units, return_gross, return_net, return_discount,
    ))


def summary_content(
    date=DATE,
    z=Z,
    first=1,
    last=3,
    sale_count=3,
    sale_gross=15000,
    sale_net=12396,
    sale_discount=0,
    return_count=0,
    return_gross=0,
    return_net=0,
    return_discount=0,
    categories=None,
):
    if categories is None:
        categories = [category_line(10, sale_count, sale_gross, sale_net, sale_discount)]
    header = _join({
        0: "11008", 1: date, 4: z, 6: first, 7: last,
        8: sale_count, 9: sale_gross, 10: sale_net, 11: sale_discount,
        12: return_count, 13: return_gross, 14: return_net, 15: return_discount,
    }, 16)
    return "\n".join([header] + categories) + "\n"


def event_content(code, z=Z):
    return f"{code}|{DATE}|080000|{z}\n"


def closure_files(tickets=None, summary=None, with_events=True):
    """Default batch: tickets 1..3 of 5.000 each, matching summary, day markers."""
    if tickets is None:
        tickets = [ticket_content(ticket=n, time=f"10{n:02d}00") for n in (1, 2, 3)]
    files = [SourceFile(file_name("11004", n), content) for n, content in enumerate(tickets, start=1)]
    files.append(SourceFile(file_name("11008"), summary if summary is not None else summary_content()))
    if with_events:
        files.append(SourceFile(file_name("11001"), event_content("11001")))
        files.append(SourceFile(file_name("11002"), event_content("11002")))
    return files


@pytest.fixture
def clean_files():
    return closure_files()
