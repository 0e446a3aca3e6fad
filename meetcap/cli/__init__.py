"""
meetcap.cli — typer application (`meetcap` console script).
"""
