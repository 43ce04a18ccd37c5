"""Modelos y descriptores del dominio.

Por qué:
- Aquí viven las estructuras de datos puras (Pydantic v2) y la descripción
  estática de cada dominio de ajustes.
- El dominio no sabe nada de ficheros, cifrado ni CLI.
"""
