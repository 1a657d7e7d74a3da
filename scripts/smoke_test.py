#!/usr/bin/env python3
"""
Smoke test for a running LaTeX PDF service.

Checks /health, posts a LaTeX document to /compile and saves the returned PDF.

Examples:\n

    smoke_test.py                                   # Sample résumé against localhost:5001

    smoke_test.py --tex path/to/cv.tex              # Compile your own file

    smoke_test.py --url https://pdf.example.fly.dev --api-key $FLY_API_KEY
"""

import os
from pathlib import Path
from typing import Optional

import httpx
import typer
from typing_extensions import Annotated

SAMPLE_LATEX = r"""\documentclass[letterpaper,11pt]{article}
\usepackage[top=2cm,bottom=2cm,left=2cm,right=2cm]{geometry}
\usepackage{titlesec}
\usepackage{enumitem}
\usepackage[hidelinks]{hyperref}
\titleformat{\section}{\large\bfseries}{}{0em}{}[\titlerule]
\begin{document}
\begin{center}
  {\Huge \textbf{John Smith}} \\[4pt]
  \href{mailto:john@example.com}{john@example.com} $|$ \href{https://johnsmith.dev}{johnsmith.dev}
\end{center}

\section{Experience}
\textbf{Backend Engineer} \hfill Acme Corp, 2021 -- Present
\begin{itemize}[leftmargin=*]
  \item Built REST APIs serving 10K RPM using FastAPI and PostgreSQL
  \item Reduced API latency by 40\% through query optimization
\end{itemize}

\section{Education}
\textbf{B.Sc. Computer Science} \hfill University of Somewhere, 2021
\end{document}
"""

app = typer.Typer(help="Exercise /health and /compile on a running service", add_completion=False)


@app.command()
def main(
    url: Annotated[str, typer.Option(help="Service base URL")] = "http://localhost:5001",
    tex: Annotated[
        Optional[Path],
        typer.Option(help="LaTeX file to compile (default: built-in sample résumé)", exists=True, dir_okay=False),
    ] = None,
    filename: Annotated[str, typer.Option(help="Base name requested for the PDF")] = "test-document",
    output: Annotated[Path, typer.Option("--output", "-o", help="Where to write the PDF")] = Path("test-output.pdf"),
    api_key: Annotated[
        Optional[str],
        typer.Option(help="x-api-key value (default: $FLY_API_KEY)"),
    ] = None,
    timeout: Annotated[float, typer.Option(help="HTTP timeout in seconds")] = 60.0,
):
    """Check health, compile a document, save the PDF."""
    api_key = api_key or os.getenv("FLY_API_KEY")
    headers = {"x-api-key": api_key} if api_key else {}
    latex = tex.read_text(encoding="utf-8") if tex else SAMPLE_LATEX

    with httpx.Client(base_url=url, headers=headers, timeout=timeout) as client:
        typer.echo("1. Testing health endpoint...")
        try:
            health = client.get("/health")
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {url}: {exc}", fg=typer.colors.RED, err=True)
            typer.echo("Make sure the service is running: latex-service")
            raise typer.Exit(1)
        typer.echo(f"   {health.status_code} {health.json()}")

        typer.echo("2. Testing LaTeX compilation...")
        resp = client.post("/compile", json={"latex": latex, "filename": filename})

    if resp.status_code != 200:
        typer.secho(f"Compilation failed ({resp.status_code}): {resp.json()}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    output.write_bytes(resp.content)
    typer.secho(f"   PDF saved to {output} ({len(resp.content) / 1024:.2f} KB)", fg=typer.colors.GREEN)
    typer.echo(f"   Content-Disposition: {resp.headers.get('content-disposition')}")


if __name__ == "__main__":
    app()
