"""Pure helpers: query compilation, retry combinators and source parsing."""
