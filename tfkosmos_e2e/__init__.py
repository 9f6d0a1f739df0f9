"""Browser-driven acceptance harness for the TFKosmos web application.

Screen objects live in :mod:`tfkosmos_e2e.pages`, journeys are composed with
:class:`tfkosmos_e2e.scenario.Scenario`, and all configuration comes from
:data:`tfkosmos_e2e.config.settings`.
"""

__version__ = "1.0.0"
