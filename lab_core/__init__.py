"""
lab_core - data layer of the lab equipment borrowing tracker.

Students request components, admins approve, reject and record returns;
every read and write goes through lab_core.offline.LabDataService.
"""

__version__ = "1.0.0"
