"""
Connectors: console REPL, reminder notifiers (console, Matrix), background clock runner.
"""
