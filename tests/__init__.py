"""
Xray Bridge - Test Suite Package.

Unit tests for the catalog, configuration, Xray/Jira clients, step sync,
result reporting, driver lifecycle and CLI. All remote calls are mocked.
"""
