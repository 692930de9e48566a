"""
Lab Units - Display units for lab analytes

Responsibilities:
- Map analyte column names to the unit shown next to the value

Design principles:
- Display hint only: analytes missing here are still shown (with no unit)
- Keys match the lab results table column names exactly
- Single source of truth for unit strings

Note: This is a simple lookup table. Per-site units would come from the
lab system itself.
"""

# Liver panel
LIVER_UNITS = {
    'ALT': 'U/L',
    'AST': 'U/L',
    'ALP': 'U/L',
    'GGT': 'U/L',
    'Total Bilirubin': 'mg/dL',
    'Direct Bilirubin': 'mg/dL',
    'Albumin': 'g/dL',
    'Total Protein': 'g/dL',
}

# Complete blood count
CBC_UNITS = {
    'WBC': 'x10^3/uL',
    'RBC': 'x10^6/uL',
    'Hemoglobin': 'g/dL',
    'Hematocrit': '%',
    'Platelets': 'x10^3/uL',
}

# Chemistry / renal
CHEMISTRY_UNITS = {
    'Glucose': 'mg/dL',
    'BUN': 'mg/dL',
    'Creatinine': 'mg/dL',
    'Sodium': 'mmol/L',
    'Potassium': 'mmol/L',
    'Chloride': 'mmol/L',
    'CO2': 'mmol/L',
    'Calcium': 'mg/dL',
}

# Coagulation and markers
OTHER_UNITS = {
    'INR': '',
    'PT': 'sec',
    'AFP': 'ng/mL',
    'CA 19-9': 'U/mL',
    'CEA': 'ng/mL',
    'CRP': 'mg/L',
    'Lipase': 'U/L',
    'Amylase': 'U/L',
}

LAB_UNITS = {
    **LIVER_UNITS,
    **CBC_UNITS,
    **CHEMISTRY_UNITS,
    **OTHER_UNITS,
}


def get_unit(analyte, unit_table=None):
    """
    Look up display unit for an analyte.

    Args:
        analyte (str): Analyte column name, e.g. 'ALT'
        unit_table (dict): Optional override table (defaults to LAB_UNITS)

    Returns:
        str: Trimmed unit, or '' if the analyte is not in the table

    Examples:
        >>> get_unit('ALT')
        'U/L'

        >>> get_unit('Mystery Marker')
        ''
    """
    table = LAB_UNITS if unit_table is None else unit_table
    unit = table.get(analyte)
    if unit is None:
        return ''
    return str(unit).strip()
