"""Release feeds that supply raw release records to the catalog builder.

A feed serves one page of releases at a time, newest first, and says
whether another page exists. The builder decides when to stop asking.
"""
