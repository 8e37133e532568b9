# src/atlas_pipelines/core/compiler/planner.py
"""
Planejador da ordem de visita das tarefas de um grafo.

Este módulo valida a estrutura de um `GraphSpec` e produz uma ordem
topológica determinística dos ids de tarefa. Os emissores visitam as
tarefas exclusivamente nesta ordem, de forma que a saída não dependa
da ordem de inserção do dicionário de tarefas.

O planner opera exclusivamente em nível estrutural, analisando:
    - presença de `componentRef.spec` em cada tarefa
    - referências `taskOutput` (tarefa e saída existentes)
    - referências `graphInput` (entrada declarada no componente pai)
    - formação de ciclos

Decisões arquiteturais:
    - Ordenação topológica determinística (Kahn modificado)
    - Empates são resolvidos por ordem lexicográfica do id da tarefa
    - Erros estruturais são fatais e atribuídos à tarefa responsável

Invariantes:
    - Nenhuma tarefa aparece antes de suas produtoras
    - Todas as tarefas aparecem exatamente uma vez
    - A mesma definição de grafo produz sempre a mesma ordem

Limites explícitos:
    - Não resolve linhas de comando
    - Não interage com o CompilationContext
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Set

from atlas_pipelines.core.exceptions import (
    CyclicGraph,
    DanglingReference,
    UnresolvedComponentReference,
)
from atlas_pipelines.core.spec.model import (
    Argument,
    GraphInputArgument,
    GraphSpec,
    TaskOutputArgument,
)


def _check_argument(
    argument: Argument,
    graph: GraphSpec,
    graph_inputs: Set[str],
) -> None:
    if isinstance(argument, GraphInputArgument):
        if argument.input_name not in graph_inputs:
            raise DanglingReference(
                f'Argument references unknown graph input "{argument.input_name}"',
                details={"input": argument.input_name},
            )
    elif isinstance(argument, TaskOutputArgument):
        producer = graph.tasks.get(argument.task_id)
        if producer is None:
            raise DanglingReference(
                f'Argument references unknown task "{argument.task_id}"',
                details={"task": argument.task_id, "output": argument.output_name},
            )
        producer_spec = producer.component_ref.spec
        if producer_spec is not None and argument.output_name not in producer_spec.output_names():
            raise DanglingReference(
                f'Task "{argument.task_id}" has no output "{argument.output_name}"',
                details={"task": argument.task_id, "output": argument.output_name},
            )


def task_dependencies(graph: GraphSpec) -> Dict[str, List[str]]:
    """Produtoras diretas de cada tarefa (a partir dos argumentos `taskOutput`)."""
    deps: Dict[str, List[str]] = {}
    for task_id, task in graph.tasks.items():
        producers = {
            arg.task_id
            for arg in task.arguments.values()
            if isinstance(arg, TaskOutputArgument)
        }
        deps[task_id] = sorted(producers)
    return deps


def plan_task_order(graph: GraphSpec, *, graph_inputs: Iterable[str]) -> List[str]:
    """
    Valida o grafo e retorna os ids das tarefas em ordem topológica.

    Args:
        graph (GraphSpec): Grafo de tarefas a planejar.
        graph_inputs (Iterable[str]): Entradas declaradas pelo componente pai.

    Returns:
        List[str]: Ids das tarefas em ordem determinística de visita.

    Raises:
        UnresolvedComponentReference: Se uma tarefa não tiver `componentRef.spec`.
        DanglingReference: Se um argumento referenciar tarefa, saída ou entrada inexistente.
        CyclicGraph: Se houver ciclo no grafo de dependências.
    """
    inputs = set(graph_inputs)

    for task_id, task in graph.tasks.items():
        try:
            if task.component_ref.spec is None:
                raise UnresolvedComponentReference(
                    "Task does not have componentRef.spec",
                    details={"component": task.component_ref.name, "url": task.component_ref.url},
                    hint="Load the component before compiling the pipeline.",
                )
            for argument in task.arguments.values():
                _check_argument(argument, graph, inputs)
        except (UnresolvedComponentReference, DanglingReference) as e:
            raise e.within_task(task_id) from e

    for output_name, argument in graph.output_values.items():
        try:
            _check_argument(argument, graph, inputs)
        except DanglingReference as e:
            raise DanglingReference(
                f'Graph output "{output_name}": {e.message}',
                details=dict(e.details, graph_output=output_name),
            ) from e

    deps = task_dependencies(graph)

    # Kahn's algorithm (deterministic)
    incoming_count: Dict[str, int] = {tid: len(d) for tid, d in deps.items()}
    outgoing: Dict[str, Set[str]] = {tid: set() for tid in deps}
    for tid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].add(tid)

    ready: List[str] = sorted(tid for tid, c in incoming_count.items() if c == 0)
    order: List[str] = []

    while ready:
        tid = ready.pop(0)  # smallest lexicographic
        order.append(tid)
        for child in sorted(outgoing[tid]):
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort()

    if len(order) != len(deps):
        remaining = sorted(tid for tid in deps if tid not in set(order))
        raise CyclicGraph(
            "Cycle detected in task dependency graph",
            details={"tasks": remaining},
        )

    return order
