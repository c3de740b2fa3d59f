"""Named skill documents, their stores, and the tools that manage them."""