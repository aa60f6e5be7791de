"""ventas-clean — Clean a raw sales ledger into KPIs and a re-exportable CSV."""

__version__ = "0.1.0"

REQUIRED_FIELDS: list[str] = [
    "fecha", "franja", "familia", "producto", "unidades", "precio_unitario",
]
CLEAN_FIELDS: list[str] = [*REQUIRED_FIELDS, "importe"]

VALID_FRANJAS: tuple[str, ...] = ("Desayuno", "Comida")
VALID_FAMILIAS: tuple[str, ...] = ("Bebida", "Entrante", "Principal", "Postre")

CLEAN_CSV_NAME = "ventas_clean.csv"
