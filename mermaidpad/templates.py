"""Starter diagrams offered from the command palette."""

from __future__ import annotations

TEMPLATES: dict[str, str] = {
    "flowchart": """flowchart LR
  A[Start] --> B{Condition}
  B -->|Yes| C[Process]
  B -->|No| D[End]
  C --> D""",
    "sequence": """sequenceDiagram
  participant U as User
  participant S as Server
  participant D as DB
  U->>S: Request
  S->>D: Query
  D-->>S: Result
  S-->>U: Response""",
    "class": """classDiagram
  class Animal {
    +String name
    +move()
  }
  class Dog {
    +bark()
  }
  Animal <|-- Dog""",
    "state": """stateDiagram-v2
  [*] --> Idle
  Idle --> Loading : fetch
  Loading --> Success : done
  Loading --> Error : fail
  Success --> [*]
  Error --> Loading : retry""",
    "er": """erDiagram
  CUSTOMER ||--o{ ORDER : places
  ORDER ||--|{ LINE-ITEM : contains
  CUSTOMER {
    string name
    string email
  }""",
    "mindmap": """mindmap
  root((Project))
    Goals
      Ship v1
    Risks
      Scope creep""",
    "gantt": """gantt
  title Release plan
  dateFormat YYYY-MM-DD
  section Build
  Design :a1, 2024-01-01, 7d
  Implement :after a1, 14d""",
    "pie": """pie title Traffic sources
  "Search" : 55
  "Direct" : 30
  "Social" : 15""",
    "journey": """journey
  title Checkout
  section Browse
    Find product: 4: Shopper
  section Pay
    Enter card: 2: Shopper""",
    "gitGraph": """gitGraph
  commit
  branch feature
  commit
  checkout main
  merge feature""",
    "timeline": """timeline
  title Product history
  2022 : Prototype
  2023 : Beta
  2024 : General availability""",
}

TEMPLATE_LABELS: dict[str, str] = {
    "flowchart": "Flowchart",
    "sequence": "Sequence diagram",
    "class": "Class diagram",
    "state": "State diagram",
    "er": "Entity relationship",
    "mindmap": "Mindmap",
    "gantt": "Gantt chart",
    "pie": "Pie chart",
    "journey": "User journey",
    "gitGraph": "Git graph",
    "timeline": "Timeline",
}


__all__ = ["TEMPLATES", "TEMPLATE_LABELS"]
