"""Lark grammar definition for forecast formulas.

This grammar supports:
- Arithmetic: +, -, *, /, %, ^ (power)
- Comparison: =, ==, !=, <>, <, >, <=, >=
- Unary plus and minus
- Variables and entity references: headcount, stream_1, driver_12
- Function calls: round(x, 2), max(a, b, c)
- Numeric literals
"""

# Lark grammar for formula parsing
FORMULA_GRAMMAR = r"""
    ?start: expression

    ?expression: comparison

    ?comparison: additive
        | comparison "=" additive -> eq
        | comparison "==" additive -> eq
        | comparison "!=" additive -> ne
        | comparison "<>" additive -> ne
        | comparison "<" additive -> lt
        | comparison ">" additive -> gt
        | comparison "<=" additive -> le
        | comparison ">=" additive -> ge

    ?additive: multiplicative
        | additive "+" multiplicative -> add
        | additive "-" multiplicative -> sub

    ?multiplicative: unary
        | multiplicative "*" unary -> mul
        | multiplicative "/" unary -> div
        | multiplicative "%" unary -> mod

    // Unary minus binds looser than ^, so -2^2 == -4
    ?unary: power
        | "-" unary -> neg
        | "+" unary -> pos

    ?power: atom
        | atom "^" unary -> pow

    ?atom: NUMBER -> number
        | NAME -> variable
        | function_call
        | "(" expression ")"

    function_call: NAME "(" [arguments] ")"

    arguments: expression ("," expression)*

    // Variables, entity references (stream_1) and function names
    NAME: /[A-Za-z][A-Za-z0-9_]*/

    // Number literals (integer or decimal, with optional scientific notation)
    // Note: negative sign is handled by unary operator, not here
    NUMBER: /(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?/

    %import common.WS
    %ignore WS
"""
