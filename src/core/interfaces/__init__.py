"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Invierte dependencias: el core depende de abstracciones.
"""
