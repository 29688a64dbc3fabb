"""Domain layer for spendtrail application.

Services are imported from their modules (``spendtrail.domain.csv_import``
and so on); the storage layer imports ``spendtrail.domain.entities`` and must
not pull the services in with it.
"""
