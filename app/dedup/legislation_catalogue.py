"""
Curated legislation reference data.

Keys of CATALOGUE are lower-cased "<title> <year>" strings as they appear in
register citations after title cleaning.
"""

from __future__ import annotations

from typing import NamedTuple

from app.domain.enforcement import LegislationType

TYPE_CODES = {
    "ukpga": LegislationType.ACT,
    "uksi": LegislationType.REGULATION,
    "ukla": LegislationType.ACT,
}


class CatalogueEntry(NamedTuple):
    title: str
    year: int
    number: int
    legislation_type: str


def _entry(title: str, type_code: str, year: int, number: int) -> CatalogueEntry:
    return CatalogueEntry(title, year, number, TYPE_CODES.get(type_code, LegislationType.REGULATION))


CATALOGUE: dict[str, CatalogueEntry] = {
    "health and safety at work act 1974": _entry("Health and Safety at Work etc. Act", "ukpga", 1974, 37),
    "health and safety at work etc act 1974": _entry("Health and Safety at Work etc. Act", "ukpga", 1974, 37),
    "health and safety at work etc. act 1974": _entry("Health and Safety at Work etc. Act", "ukpga", 1974, 37),
    "control of substances hazardous to health regulations 2002": _entry(
        "Control of Substances Hazardous to Health Regulations", "uksi", 2002, 2677
    ),
    "workplace (health, safety and welfare) regulations 1992": _entry(
        "Workplace (Health, Safety and Welfare) Regulations", "uksi", 1992, 3004
    ),
    "lifting operations and lifting equipment regulations 1998": _entry(
        "Lifting Operations and Lifting Equipment Regulations", "uksi", 1998, 2307
    ),
    "construction (design and management) regulations 2015": _entry(
        "Construction (Design and Management) Regulations", "uksi", 2015, 51
    ),
    "construction (design and management) regulations 2007": _entry(
        "Construction (Design and Management) Regulations", "uksi", 2007, 320
    ),
    "gas safety (installation and use) regulations 1998": _entry(
        "Gas Safety (Installation and Use) Regulations", "uksi", 1998, 2451
    ),
    "control of vibration at work regulations 2005": _entry(
        "Control of Vibration at Work Regulations", "uksi", 2005, 1093
    ),
    "management of health and safety at work regulations 1999": _entry(
        "Management of Health and Safety at Work Regulations", "uksi", 1999, 3242
    ),
    "work at height regulations 2005": _entry("Work at Height Regulations", "uksi", 2005, 735),
    "provision and use of work equipment regulations 1998": _entry(
        "Provision and Use of Work Equipment Regulations", "uksi", 1998, 2306
    ),
    "control of noise at work regulations 2005": _entry("Control of Noise at Work Regulations", "uksi", 2005, 1643),
    "dangerous substances and explosive atmospheres regulations 2002": _entry(
        "Dangerous Substances and Explosive Atmospheres Regulations", "uksi", 2002, 2776
    ),
    "electricity at work regulations 1989": _entry("Electricity at Work Regulations", "uksi", 1989, 635),
    "control of asbestos regulations 2006": _entry("Control of Asbestos Regulations", "uksi", 2006, 2739),
    "control of asbestos regulations 2012": _entry("Control of Asbestos Regulations", "uksi", 2012, 632),
    "control of asbestos at work regulations 2002": _entry("Control of Asbestos Regulations", "uksi", 2002, 2675),
    "pressure systems safety regulations 2000": _entry("Pressure Systems Safety Regulations", "uksi", 2000, 128),
    "confined spaces regulations 1997": _entry("Confined Spaces Regulations", "uksi", 1997, 1713),
    "explosives regulations 2014": _entry("Explosives Regulations", "uksi", 2014, 1638),
    "control of lead at work regulations 2002": _entry("Control of Lead at Work Regulations", "uksi", 2002, 2676),
    "ionising radiations regulations 2017": _entry("Ionising Radiations Regulations", "uksi", 2017, 1075),
    "control of major accident hazards regulations 2015": _entry(
        "Control of Major Accident Hazards Regulations", "uksi", 2015, 483
    ),
    "manual handling operations regulations 1992": _entry("Manual Handling Operations Regulations", "uksi", 1992, 2793),
    "transport and works act 1992": _entry("Transport and Works Act", "ukpga", 1992, 42),
    "personal protective equipment at work regulations 1992": _entry(
        "Personal Protective Equipment at Work Regulations", "uksi", 1992, 2966
    ),
    "control of artificial optical radiation at work regulations 2010": _entry(
        "Control of Artificial Optical Radiation at Work Regulations", "uksi", 2010, 1140
    ),
    "mines regulations 2014": _entry("Mines Regulations", "uksi", 2014, 3248),
    "diving at work regulations 1997": _entry("Diving at Work Regulations", "uksi", 1997, 2776),
    "offshore prevention of fire regulations 1995": _entry(
        "Offshore Installations (Prevention of Fire and Explosion, and Emergency Response) Regulations",
        "uksi",
        1995,
        743,
    ),
    "asbestos (licensing) regulations 1983": _entry("Asbestos (Licensing) Regulations", "uksi", 1983, 1649),
    "health and safety (first-aid) regulations 1981": _entry(
        "Health and Safety (First-Aid) Regulations", "uksi", 1981, 917
    ),
    "reporting of injuries, diseases and dangerous occurrences regulations 1995": _entry(
        "Reporting of Injuries, Diseases and Dangerous Occurrences Regulations", "uksi", 1995, 3163
    ),
    "quarries regulations 1999": _entry("Quarries Regulations", "uksi", 1999, 2024),
    "employers' liability (compulsory insurance) regulations 1998": _entry(
        "Employers' Liability (Compulsory Insurance) Regulations", "uksi", 1998, 2573
    ),
    "control of pesticides regulations 1986": _entry("Control of Pesticides Regulations", "uksi", 1986, 1510),
    "classification, labelling and packaging of chemicals (amendments to secondary legislation) regulations 2015": _entry(
        "Classification, Labelling and Packaging of Chemicals (Amendments to Secondary Legislation) Regulations",
        "uksi",
        2015,
        21,
    ),
    "mines and quarries (tips) act 1969": _entry("Mines and Quarries (Tips) Act", "ukpga", 1969, 10),
    "offshore installations and wells (design and construction, etc.) regulations 1996": _entry(
        "Offshore Installations and Wells (Design and Construction, etc.) Regulations", "uksi", 1996, 913
    ),
    "biocidal products regulations 2001": _entry("Biocidal Products Regulations", "uksi", 2001, 880),
}

# Register citations that omit the year for these instruments.
MISSING_YEARS: dict[str, int] = {
    "Electricity at Work Regulations": 1989,
    "Workplace (Health, Safety and Welfare) Regulations": 1992,
    "Manual Handling Operations Regulations": 1992,
    "Offshore Prevention Of Fire Regulations": 1995,
    "Asbestos (Licensing) Regulations": 1983,
    "Health and Safety (First-Aid) Regulations": 1981,
    "Employers' Liability (Compulsory Insurance) Regulations": 1998,
    "Control of Pesticides Regulations": 1986,
    "Mines and Quarries (Tips) Act": 1969,
    "Biocidal Products Regulations": 2001,
    "Health and Safety (Display Screen Equipment) Regulations": 1992,
    "Corporate Manslaughter and Corporate Homicide Act": 2007,
    "Notification of Cooling Towers and Evaporative Condensers Regulations": 1992,
    "Reporting of Injuries, Diseases and Dangerous Occurrences Regulations": 1995,
    "Classification, Labelling and Packaging of Chemicals (Amendments to Secondary Legislation) Regulations": 2015,
    "Offshore Installations and Wells (Design and Construction, etc.) Regulations": 1996,
}

# Whole-title acronyms used in register citations.
ACRONYMS: dict[str, str] = {
    "PUWER": "Provision and Use of Work Equipment Regulations",
    "COSHH": "Control of Substances Hazardous to Health Regulations",
    "DSEAR": "Dangerous Substances and Explosive Atmospheres Regulations",
    "LOLER": "Lifting Operations and Lifting Equipment Regulations",
    "CDM": "Construction (Design and Management) Regulations",
    "COMAH": "Control of Major Accident Hazards Regulations",
}

# Truncated register titles and their full form.
TITLE_FIXES: tuple[tuple[str, str], ...] = (
    (r"^Electricity at Work$", "Electricity at Work Regulations"),
    (r"^Offshore Prevention Of Fire$", "Offshore Prevention Of Fire Regulations"),
    (r"Health and Safety \(First Aid\)", "Health and Safety (First-Aid) Regulations"),
    (
        r"Reporting of Injuries Diseases and Dangerous \(1995\)",
        "Reporting of Injuries, Diseases and Dangerous Occurrences Regulations",
    ),
    (r"Employers Liability Compulsory Insurance", "Employers' Liability (Compulsory Insurance) Regulations"),
    (r"^Control of Pesticides$", "Control of Pesticides Regulations"),
    (
        r"Classif,label and pack of substancesandmixtu",
        "Classification, Labelling and Packaging of Chemicals (Amendments to Secondary Legislation) Regulations",
    ),
    (r"Mines and Quarry \(Tips\)", "Mines and Quarries (Tips) Act"),
    (
        r"Offshore Design and Construction",
        "Offshore Installations and Wells (Design and Construction, etc.) Regulations",
    ),
    (r"Make available on market and use biocid pr", "Biocidal Products Regulations"),
    (r"Corp Manslaughter and Corp Homicide", "Corporate Manslaughter and Corporate Homicide Act"),
    (
        r"^Notification of Cooling Towers and Evaporative Condensers$",
        "Notification of Cooling Towers and Evaporative Condensers Regulations",
    ),
)


def catalogue_lookup(title: str, year: int | None) -> CatalogueEntry | None:
    if year is None:
        return None
    return CATALOGUE.get(f"{title.strip().lower()} {year}")
