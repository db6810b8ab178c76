from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from loguru import logger
from pydantic import ValidationError

from dealscope.analysis.finance import InvalidFinancialInputError, analyze_property
from dealscope.analysis.finance_batch import compute_financial_metrics_df, summarize_portfolio
from dealscope.api.schemas import analysis_to_payload
from dealscope.domain.finance import FinancialInputs, generate_amortization_schedule

app = typer.Typer(help="dealscope investment metrics (single property, amortization, batch CSV).")


@app.command("analyze")
def analyze_cmd(
    purchase_price: float = typer.Option(..., "--price", help="Purchase price"),
    monthly_rent: float = typer.Option(..., "--rent", help="Monthly rent"),
    down_payment: float = typer.Option(20.0, help="Down payment, percent of price"),
    interest_rate: float = typer.Option(7.0, help="Annual interest rate, percent"),
    loan_term: int = typer.Option(30, help="Loan term in years"),
    property_tax_rate: float = typer.Option(1.2, help="Annual property tax, percent of price"),
    insurance_cost: float = typer.Option(1200.0, help="Annual insurance ($)"),
    maintenance_cost: float = typer.Option(0.0, help="Monthly maintenance ($)"),
    hoa_fees: float = typer.Option(0.0, help="Monthly HOA ($)"),
    utility_costs: float = typer.Option(0.0, help="Monthly utilities ($)"),
    vacancy_rate: float = typer.Option(5.0, help="Vacancy, percent"),
    management_fee: float = typer.Option(8.0, help="Property management, percent of rent"),
    closing_costs: float = typer.Option(0.0, help="Closing costs ($)"),
    appreciation_rate: float = typer.Option(3.0, help="Annual appreciation, percent"),
    hold_years: int = typer.Option(5, help="Holding period for IRR"),
) -> None:
    """
    Analyze one property and print the result as JSON.
    """
    try:
        inputs = FinancialInputs(
            purchase_price=purchase_price,
            down_payment=down_payment,
            interest_rate=interest_rate,
            loan_term=loan_term,
            property_tax_rate=property_tax_rate,
            insurance_cost=insurance_cost,
            maintenance_cost=maintenance_cost,
            hoa_fees=hoa_fees,
            utility_costs=utility_costs,
            vacancy_rate=vacancy_rate,
            monthly_rent=monthly_rent,
            property_management_fee=management_fee,
            closing_costs=closing_costs,
            appreciation_rate=appreciation_rate,
        )
        analysis = analyze_property(inputs, hold_years=hold_years)
    except (ValidationError, InvalidFinancialInputError) as e:
        typer.echo(f"Invalid input: {e}", err=True)
        raise typer.Exit(code=2) from e

    typer.echo(json.dumps(analysis_to_payload(analysis), indent=2))


@app.command("amortization")
def amortization_cmd(
    loan_amount: float = typer.Option(..., "--loan", help="Loan amount"),
    annual_rate: float = typer.Option(..., "--rate", help="Annual rate, percent"),
    years: int = typer.Option(30, help="Term in years"),
    yearly: bool = typer.Option(False, "--yearly", help="Only print the last month of each year"),
) -> None:
    """
    Print the amortization schedule as CSV.
    """
    rows = generate_amortization_schedule(loan_amount, annual_rate, years)
    if yearly:
        rows = [r for r in rows if r.month % 12 == 0]
    df = pd.DataFrame([asdict(r) for r in rows])
    typer.echo(df.to_csv(index=False, float_format="%.2f"))


@app.command("batch")
def batch_cmd(
    input_csv: Path = typer.Argument(..., exists=True, help="CSV with FinancialInputs columns"),
    output_csv: Optional[Path] = typer.Option(None, help="Where to write inputs + metrics"),
) -> None:
    """
    Vectorized metrics for a CSV of properties, plus a portfolio summary.
    """
    df = pd.read_csv(input_csv)
    try:
        metrics = compute_financial_metrics_df(df)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2) from e

    out = pd.concat([df, metrics], axis=1)
    output_csv = output_csv or input_csv.with_name(input_csv.stem + "_metrics.csv")
    out.to_csv(output_csv, index=False)

    summary = summarize_portfolio(metrics)
    logger.info("Batch metrics written", rows=len(out), output=str(output_csv))
    typer.echo(json.dumps(asdict(summary), indent=2))


if __name__ == "__main__":
    app()
