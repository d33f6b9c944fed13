"""
Category cleaning for raw collision attributes.

Every categorical field passes through `normalize` before it is grouped or
matched: surrounding whitespace is dropped and the dataset's placeholder
values collapse to None, so "absent" is never represented by an empty
string. Driver sex and vehicle type get dedicated folds on top of that.
"""

MISSING_VALUES = {"", "NA", "Unknown", "Unspecified"}

SUV_MARKERS = ("station wagon", "sport utility", "sport-utility", "suv")


def normalize(raw):
    """Trim a raw category; placeholders and blanks become None."""
    if raw is None:
        return None
    text = str(raw).strip()
    if text in MISSING_VALUES:
        return None
    return text


def normalize_driver_sex(raw):
    """Map single-letter sex codes to 'Male'/'Female', pass anything else through."""
    value = normalize(raw)
    if value is None:
        return None
    code = value.upper()
    if code == "M":
        return "Male"
    if code == "F":
        return "Female"
    return value


def normalize_vehicle_type(raw):
    """Fold the many SUV / station wagon spellings into 'SUV'."""
    value = normalize(raw)
    if value is None:
        return None
    lowered = value.lower()
    if any(marker in lowered for marker in SUV_MARKERS):
        return "SUV"
    if "sport" in lowered and "utility" in lowered:
        return "SUV"
    return value
