"""
Centralized AI Prompt Repository
- Keeps extraction prompts out of the service layer
- Field names match the PayslipExtraction schema
"""

# --- PAYSLIP EXTRACTION ---
PAYSLIP_EXTRACTION_SYSTEM = (
    "You are a payroll document reader for Italian payslips (buste paga). "
    "Respond with JSON only, no commentary."
)

PAYSLIP_EXTRACTION_USER = """Analizza questa busta paga e estrai i seguenti dati in formato JSON:
{
  "nome_completo": "Nome e cognome del dipendente",
  "codice_fiscale": "Codice fiscale",
  "qualifica": "Qualifica o ruolo",
  "mese": "MM/YYYY",
  "ore_mensili": numero ore lavorate nel mese,
  "retribuzione_lorda": importo lordo mensile,
  "costo_azienda": costo totale per l'azienda (se presente)
}

Se il documento contiene più buste paga, restituisci un array JSON con un oggetto per mese.
Se non trovi un dato, metti null. Rispondi SOLO con il JSON, senza altre spiegazioni."""
