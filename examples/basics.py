from formstate import FormPath, create_state_model

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a state factory")
print("-" * 100)
print()


# A factory describes the default state and props of a field.
# The model instantiates it once, with a read-only view of the merged props.
class TextFieldState:
    display_name = "TextField"
    default_state = {"value": "", "visible": True, "errors": []}
    default_props = {"path": "name"}

    def __init__(self, props):
        self.path = FormPath.parse(props["path"])

    # Runs once at construction; returned fields are merged into the initial state.
    def setup(self, state, props):
        return {"name": self.path.entire}


TextFieldModel = create_state_model(TextFieldState)
field = TextFieldModel({"path": "user.profile[0].email"})

print(f"Model: {field!r}")
print(f"Initial state: {dict(field.get_state())}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Writing and subscribing")
print("-" * 100)
print()


def log_change(snapshot):
    print(f"Field changed, value={snapshot['value']!r}, changed keys={dict(field.get_changed())}")


# Subscribers are called once per write that changed something.
field.subscribe(log_change)
field.set_state(lambda state: state.update(value="ada@example.com"))

# Writing an equal value is not a change, so nothing is printed.
field.set_state(lambda state: state.update(value="ada@example.com"))

# A silent write updates the state and the dirty map without notifying.
field.set_state(lambda state: state.update(visible=False), silent=True)
print(f"After silent write: visible={field.get_state()['visible']}, changed={field.has_changed('visible')}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Batching writes")
print("-" * 100)
print()

# Inside a batch, writes accumulate and subscribers are called once at the end.
with field.batched():
    field.set_state(lambda state: state.update(value="grace@example.com"))
    field.set_state(lambda state: state["errors"].append("domain not allowed"))
    print(f"Inside batch, batching={field.batching}")

# The flush clears the dirty map once subscribers have run.
print(f"Dirty count after batch: {field.dirty_count}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Derived state with hooks")
print("-" * 100)
print()


# compute_state runs inside every write, so derived fields are updated in the same notification.
class PriceState:
    display_name = "Price"
    default_state = {"quantity": 1, "unit_price": 10.0, "total": 10.0}
    default_props = {}

    def __init__(self, props):
        pass

    def compute_state(self, draft, current):
        draft["total"] = draft["quantity"] * draft["unit_price"]

    # Whenever the total changes, the quantity is reported as changed too.
    def dirty_check(self, dirty):
        if dirty.get("total"):
            return {"quantity": True}
        return None


PriceModel = create_state_model(PriceState)
price = PriceModel()

price.subscribe(lambda snapshot: print(f"Total is now {snapshot['total']}, changed={dict(price.get_changed())}"))
price.set_state(lambda state: state.update(unit_price=12.5))
price.set_state(lambda state: state.update(quantity=3))

# Unsubscribing with no argument removes every subscriber.
price.unsubscribe()
price.set_state(lambda state: state.update(quantity=4))  # Nothing is printed
print(f"Final total: {price.get_state()['total']}")
