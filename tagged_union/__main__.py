from tagged_union.compiler.cli import main

raise SystemExit(main())
