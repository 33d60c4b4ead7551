"""Slisp name resolver - replaces bound identifiers with positional variable references.

Every binding in a compilation unit receives an id from a single counter, so
ids are unique across the whole tree even though scopes are popped.  The
emitter can then work purely in terms of ids without knowing about shadowing.

Two binding forms are recognised:

    (let ((name value) ...) in body)
        Declarations are sequential: each value sees the declarations before
        it but not its own name or later ones.

    (let name (param ...) fn_body in body)
        The function name is visible in fn_body (self-recursion) and in body;
        the parameters are visible only in fn_body.

Identifiers not bound by any enclosing form are left untouched; they are
keywords, boolean literals, or errors the emitter will report.
"""

from typing import Dict, List, Tuple

from slisp.slisp_ast import SlispASTNode, SlispASTIdent, SlispASTVar, SlispASTList, is_ident
from slisp.slisp_error import SlispCompileError


class SlispResolver:
    """
    Lexical name resolver.

    A fresh resolver state is used for each call to resolve(), so a single
    instance can be reused across compilations.
    """

    def __init__(self) -> None:
        self._scopes: List[Dict[str, int]] = []
        self._next_id = 0

    def resolve(self, expr: SlispASTNode) -> SlispASTNode:
        """
        Resolve all bound identifiers in an expression tree.

        Args:
            expr: Tree produced by the parser

        Returns:
            Equivalent tree with positional variable references

        Raises:
            SlispCompileError: If a binding form is malformed
        """
        self._scopes = [{}]
        self._next_id = 0
        return self._resolve(expr)

    @property
    def ids_allocated(self) -> int:
        """Number of positional ids handed out by the last resolve() call."""
        return self._next_id

    def _resolve(self, expr: SlispASTNode) -> SlispASTNode:
        if isinstance(expr, SlispASTIdent):
            var_id = self._lookup(expr.name)
            if var_id is None:
                return expr

            return SlispASTVar(var_id, position=expr.position)

        if not isinstance(expr, SlispASTList):
            return expr

        if expr.head_name() == "let":
            return self._resolve_let(expr)

        return SlispASTList(tuple(self._resolve(element) for element in expr.elements), position=expr.position)

    def _resolve_let(self, expr: SlispASTList) -> SlispASTList:
        """Dispatch between the two let shapes."""
        elements = expr.elements

        if len(elements) == 4 and isinstance(elements[1], SlispASTList) and is_ident(elements[2], "in"):
            return self._resolve_sequential_let(expr)

        if (
            len(elements) == 6 and isinstance(elements[1], (SlispASTIdent, SlispASTVar))
            and isinstance(elements[2], SlispASTList) and is_ident(elements[4], "in")
        ):
            return self._resolve_function_let(expr)

        raise SlispCompileError(
            message="Malformed let expression",
            received=expr.describe(),
            expected="(let ((name value) ...) in body) or (let name (param ...) fn_body in body)",
            example="(let ((x 5) (y 6)) in (+ x y))",
            position=expr.position
        )

    def _resolve_sequential_let(self, expr: SlispASTList) -> SlispASTList:
        let_kw, declarations, in_kw, body = expr.elements
        assert isinstance(declarations, SlispASTList)

        self._scopes.append({})
        resolved_decls = []
        for decl in declarations.elements:
            name, value = self._split_declaration(decl)

            # Resolve the value before the name becomes visible
            resolved_value = self._resolve(value)
            var = self._bind(name)
            resolved_decls.append(SlispASTList((var, resolved_value), position=decl.position))

        resolved_body = self._resolve(body)
        self._scopes.pop()

        return SlispASTList(
            (let_kw, SlispASTList(tuple(resolved_decls), position=declarations.position), in_kw, resolved_body),
            position=expr.position
        )

    def _resolve_function_let(self, expr: SlispASTList) -> SlispASTList:
        let_kw, name, params, fn_body, in_kw, body = expr.elements
        assert isinstance(params, SlispASTList)

        # Scope holding the function's own name, visible to fn_body and body
        self._scopes.append({})
        fn_var = self._bind(name)

        self._scopes.append({})
        resolved_params = []
        for param in params.elements:
            if not isinstance(param, (SlispASTIdent, SlispASTVar)):
                raise SlispCompileError(
                    message="Function parameter must be an identifier",
                    received=param.describe(),
                    context=f"In function definition: {expr.describe()}",
                    example="(let add (x y) (+ x y) in (add 1 2))",
                    position=param.position
                )

            resolved_params.append(self._bind(param))

        resolved_fn_body = self._resolve(fn_body)
        self._scopes.pop()

        resolved_body = self._resolve(body)
        self._scopes.pop()

        return SlispASTList(
            (
                let_kw, fn_var, SlispASTList(tuple(resolved_params), position=params.position),
                resolved_fn_body, in_kw, resolved_body
            ),
            position=expr.position
        )

    def _split_declaration(self, decl: SlispASTNode) -> Tuple[SlispASTNode, SlispASTNode]:
        """Check a (name value) declaration and return its parts."""
        if (
            isinstance(decl, SlispASTList) and len(decl.elements) == 2
            and isinstance(decl.elements[0], (SlispASTIdent, SlispASTVar))
        ):
            return decl.elements[0], decl.elements[1]

        raise SlispCompileError(
            message="Malformed let declaration",
            received=decl.describe(),
            expected="(name value)",
            example="(let ((x 5)) in x)",
            position=decl.position
        )

    def _bind(self, name: SlispASTNode) -> SlispASTVar:
        """
        Bind a name in the innermost scope.

        A name that is already a positional reference keeps its id, which makes
        resolution of a resolved tree a no-op.
        """
        if isinstance(name, SlispASTVar):
            return name

        assert isinstance(name, SlispASTIdent)
        var_id = self._next_id
        self._next_id += 1
        self._scopes[-1][name.name] = var_id
        return SlispASTVar(var_id, position=name.position)

    def _lookup(self, name: str) -> int | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]

        return None
