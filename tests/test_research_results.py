# tests/test_research_results.py
import io

import pandas as pd

from salescrew.ui.research_results import generate_csv, get_quality_color


def test_generate_csv_has_one_row_per_company(company_factory) -> None:
    companies = [company_factory(name="Acme Corp", status="valid"), company_factory(name="Globex", email=None)]
    companies[0].quality_score = 88

    frame = pd.read_csv(io.StringIO(generate_csv(companies)))

    assert list(frame["Company Name"]) == ["Acme Corp", "Globex"]
    assert frame.loc[0, "Email Status"] == "valid"
    assert frame.loc[0, "Quality Score"] == 88
    assert frame.loc[0, "Subject Line 3"] == "Three"
    assert pd.isna(frame.loc[1, "Email"])


def test_quality_color_bands() -> None:
    assert [get_quality_color(s) for s in (85, 65, 45, 10)] == ["🟢", "🟡", "🟠", "🔴"]
