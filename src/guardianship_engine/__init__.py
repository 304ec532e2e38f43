"""
Guardianship Engine - lifecycle and compliance for Kenyan guardianships

Administers court-supervised guardianships of minors and incapacitated
wards under the Law of Succession Act and the Children Act: appointing and
replacing guardians, S.72 bonds, S.73 annual reports, and the deadlines,
scores and penalties that follow from them.

Fun fact: an S.72 bond works like an executor's administration bond - an
insurer stands behind the guardian so the ward is made whole if the estate
is mismanaged.
"""

from guardianship_engine.service import GuardianshipService

__version__ = "0.1.0"
__all__ = ["GuardianshipService", "__version__"]
