from ledger_indexer.cli import main

raise SystemExit(main())
