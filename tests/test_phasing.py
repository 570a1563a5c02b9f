from tracedecomp.models import BaseCalls
from tracedecomp.phasing import iupac, phase_ref_allele


def calls(primary: str, secondary: str) -> BaseCalls:
    return BaseCalls(
        consensus=primary,
        primary=list(primary),
        secondary=list(secondary),
        bcpos=list(range(len(primary))),
    )


def test_iupac() -> None:
    assert iupac("A", "G") == "R"
    assert iupac("g", "a") == "R"
    assert iupac("C", "T") == "Y"
    assert iupac("C", "G") == "S"
    assert iupac("A", "T") == "W"
    assert iupac("G", "T") == "K"
    assert iupac("A", "C") == "M"
    assert iupac("T", "T") == "T"
    assert iupac("A", "N") == "N"


def test_phase_with_ambiguity_code() -> None:
    bc = calls("C", "R")
    assert phase_ref_allele(bc, "A", 0) == "S"  # C + G
    assert phase_ref_allele(bc, "G", 0) == "M"  # C + A
    assert phase_ref_allele(bc, "T", 0) == "N"


def test_phase_secondary_equals_reference() -> None:
    bc = calls("AT", "GT")
    assert phase_ref_allele(bc, "G", 0) == "A"
    assert phase_ref_allele(bc, "T", 1) == "T"


def test_phase_no_call_and_plain_bases() -> None:
    bc = calls("AC", "NT")
    assert phase_ref_allele(bc, "G", 0) == "N"
    assert phase_ref_allele(bc, "G", 1) == "N"


def test_phase_primary_is_other_allele() -> None:
    bc = calls("G", "R")
    assert phase_ref_allele(bc, "A", 0) == "G"
