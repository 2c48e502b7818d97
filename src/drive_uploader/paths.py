"""Builders for the logical folder paths documents are filed under."""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime

from drive_uploader.models import FolderPath

FINANCIAL_FOLDER = "Documentações Financeiras"

FINANCIAL_TYPE_NAMES = {
    "balanco": "Balanço Patrimonial",
    "orcamento": "Orçamento Anual",
    "prestacao-contas": "Prestação de Contas",
    "receitas": "Relatório de Receitas",
    "despesas": "Relatório de Despesas",
    "licitacoes": "Licitações e Contratos",
    "folha-pagamento": "Folha de Pagamento",
    "outros": "Outros",
}

PERIOD_NAMES = {
    "1": "1º Trimestre",
    "2": "2º Trimestre",
    "3": "3º Trimestre",
    "4": "4º Trimestre",
    "semestral-1": "1º Semestre",
    "semestral-2": "2º Semestre",
}


def server_folder_path(municipality: str, server_name: str) -> FolderPath:
    """Municipality > "Servidores <initial>" > server name."""
    if not municipality:
        raise ValueError("Municipality name is required")
    if not server_name:
        raise ValueError("Server name is required")
    return (municipality, f"Servidores {server_name[0].upper()}", server_name)


def financial_folder_path(
    municipality: str,
    document_type: str,
    year: int | str | None,
    period: str | None = None,
) -> FolderPath:
    """Municipality > financial folder > type > year [> period]."""
    if not municipality:
        raise ValueError("Municipality name is required")
    if not document_type:
        raise ValueError("Financial document type is required")
    if year is None or str(year) == "":
        raise ValueError("Year is required for financial documents")

    segments = [
        municipality,
        FINANCIAL_FOLDER,
        FINANCIAL_TYPE_NAMES.get(document_type, document_type),
        str(year),
    ]
    if period:
        segments.append(PERIOD_NAMES.get(period, period))
    return tuple(segments)


def hierarchical_label(segments: Sequence[str]) -> str:
    return " > ".join(segments)


def timestamped_file_name(original_name: str, now: datetime | None = None) -> str:
    """Prefix a file name with the epoch time in milliseconds."""
    millis = int(now.timestamp() * 1000) if now else int(time.time() * 1000)
    return f"{millis}_{original_name}"
